import pytest

from ipv6probe.probe import Lifecycle


class FakeFetch:
    """Stand-in fetcher recording issued fetches for manual resolution."""

    def __init__(self):
        self.calls = []

    def __call__(self, url, timeout_ms, callback):
        self.calls.append((url, timeout_ms, callback))

    @property
    def urls(self):
        return [url for (url, _timeout_ms, _callback) in self.calls]

    def resolve(self, url, outcome):
        for (call_url, _timeout_ms, callback) in self.calls:
            if call_url == url:
                callback(outcome)
                return

        raise LookupError(url)


@pytest.fixture
def fetch():
    return FakeFetch()


@pytest.fixture
def lifecycle():
    return Lifecycle()


@pytest.fixture
def reports():
    return []


@pytest.fixture
def fetch_factory():
    return FakeFetch
