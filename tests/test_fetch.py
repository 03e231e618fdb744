import http.server
import io
import socket
import threading
import time
import urllib.error

import pytest

from ipv6probe.probe import fetch as fetchmod
from ipv6probe.probe import (
    FetchFailure,
    FetchSuccess,
    FetchTimeout,
    Lifecycle,
    ProbeCoordinator,
    TimedFetcher,
)


class FakeResponse(io.BytesIO):

    status = 200


def test_fetch_success(monkeypatch):
    monkeypatch.setattr(fetchmod.urllib.request, 'urlopen',
                        lambda url, timeout: FakeResponse(b'GIF89a'))

    outcome = fetchmod.fetch_once('http://[2001:db8::1]/p', 1200)

    assert isinstance(outcome, FetchSuccess)
    assert outcome
    assert outcome.elapsed_ms >= 0


def test_fetch_passes_timeout_seconds(monkeypatch):
    calls = []

    def urlopen(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(b'')

    monkeypatch.setattr(fetchmod.urllib.request, 'urlopen', urlopen)

    fetchmod.fetch_once('http://example.com/p', 1500)

    assert calls == [('http://example.com/p', 1.5)]


@pytest.mark.parametrize('error', [
    socket.timeout('timed out'),
    urllib.error.URLError(socket.timeout('timed out')),
])
def test_fetch_timeout(monkeypatch, error):
    def urlopen(url, timeout):
        raise error

    monkeypatch.setattr(fetchmod.urllib.request, 'urlopen', urlopen)

    outcome = fetchmod.fetch_once('http://[2001:db8::1]/p', 1200)

    assert isinstance(outcome, FetchTimeout)
    assert outcome.timed_out
    assert not outcome


@pytest.mark.parametrize('error', [
    urllib.error.URLError(ConnectionRefusedError(111, 'Connection refused')),
    urllib.error.URLError(socket.gaierror(-2, 'Name or service not known')),
    urllib.error.HTTPError('http://example.com/p', 404, 'Not Found', {}, None),
    ValueError('unknown url type'),
])
def test_fetch_failure(monkeypatch, error):
    def urlopen(url, timeout):
        raise error

    monkeypatch.setattr(fetchmod.urllib.request, 'urlopen', urlopen)

    outcome = fetchmod.fetch_once('http://example.com/p', 1200)

    assert isinstance(outcome, FetchFailure)
    assert not outcome.timed_out
    assert outcome.error is error


def test_fetch_over_budget_is_timeout(monkeypatch):
    """A transfer completing no sooner than the timeout is not a success."""
    clock = [10.0, 11.5]

    monkeypatch.setattr(fetchmod.time, 'perf_counter',
                        lambda: clock.pop(0) if len(clock) > 1 else clock[0])
    monkeypatch.setattr(fetchmod.urllib.request, 'urlopen',
                        lambda url, timeout: FakeResponse(b''))

    outcome = fetchmod.fetch_once('http://example.com/p', 1200)

    assert isinstance(outcome, FetchTimeout)
    assert outcome.elapsed_ms == 1500


def test_fetcher_dispatches_on_calling_thread():
    """Callbacks run on the thread awaiting them, not the pool's."""
    release = threading.Event()

    def fetch(url, timeout_ms):
        release.wait(5)
        return FetchSuccess(1) if 'ok' in url else FetchFailure(1)

    received = []

    with TimedFetcher(fetch=fetch) as fetcher:
        fetcher('http://ok.example.com/', 5000,
                lambda outcome: received.append((threading.current_thread(), bool(outcome))))
        fetcher('http://bad.example.com/', 5000,
                lambda outcome: received.append((threading.current_thread(), bool(outcome))))

        # issuing does not block
        assert received == []
        assert fetcher.pending == 2

        release.set()
        fetcher.wait()

        assert fetcher.pending == 0

    assert sorted(success for (_thread, success) in received) == [False, True]
    assert {thread for (thread, _success) in received} == {threading.current_thread()}


def test_fetcher_contains_unexpected_errors():
    def fetch(url, timeout_ms):
        raise RuntimeError('boom')

    received = []

    with TimedFetcher(fetch=fetch) as fetcher:
        fetcher('http://example.com/', 100, received.append)
        fetcher.wait()

    (outcome,) = received

    assert isinstance(outcome, FetchFailure)
    assert isinstance(outcome.error, RuntimeError)


class TrickleHandler(http.server.BaseHTTPRequestHandler):
    """Serve a small body one byte at a time, slowly."""

    body_length = 16
    interval = 0.25

    def do_GET(self):
        self.send_response(200)
        self.send_header('Content-Length', str(self.body_length))
        self.end_headers()

        try:
            for _count in range(self.body_length):
                self.wfile.write(b'x')
                self.wfile.flush()
                time.sleep(self.interval)
        except ConnectionError:
            pass

    def log_message(self, *args):
        pass


@pytest.fixture
def trickle_url():
    server = http.server.ThreadingHTTPServer(('127.0.0.1', 0), TrickleHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    (host, port) = server.server_address[:2]

    yield f'http://{host}:{port}/p'

    server.shutdown()
    server.server_close()


def test_fetch_trickle_cut_off_at_deadline(trickle_url):
    """A transfer outlasting its budget is reported once the budget is spent."""
    start = time.perf_counter()

    outcome = fetchmod.fetch_once(trickle_url, 500)

    took = time.perf_counter() - start

    assert isinstance(outcome, FetchTimeout)
    assert took < 1.0


def test_fetcher_abandons_stalled_fetch():
    """A fetch which never returns settles as a timeout at its deadline."""
    release = threading.Event()

    def fetch(url, timeout_ms):
        if 'stalled' in url:
            release.wait(10)
            return FetchSuccess(10000)

        return FetchSuccess(5)

    received = []

    try:
        with TimedFetcher(fetch=fetch) as fetcher:
            start = time.perf_counter()

            fetcher('http://stalled.example.com/', 300, received.append)
            fetcher('http://ok.example.com/', 300, received.append)
            fetcher.wait()

            took = time.perf_counter() - start
    finally:
        release.set()

    assert took < 1.0
    assert sorted(type(outcome).__name__ for outcome in received) == ['FetchSuccess',
                                                                       'FetchTimeout']
    assert fetcher.pending == 0


def test_stalled_fetch_does_not_block_completion():
    """The coordinator completes within budget even if a fetch stalls."""
    release = threading.Event()

    def fetch(url, timeout_ms):
        if 'name.example.com' in url:
            release.wait(10)

        return FetchSuccess(20)

    reports = []
    lifecycle = Lifecycle()

    try:
        with TimedFetcher(fetch=fetch) as fetcher:
            probe = ProbeCoordinator(fetcher, lifecycle, reports.append)
            probe.initialize({'direct_target': 'http://[2001:db8::1]/p',
                              'resolved_target': 'http://name.example.com/p',
                              'timeout_ms': 300})

            lifecycle.fire('page_ready')
            fetcher.wait()

            assert probe.is_complete()
    finally:
        release.set()

    assert reports == [{'direct': 20, 'resolved': 'NS'}]
