"""Timed fetch primitive: a single, minimal HTTP transfer reporting
exactly one outcome.

"""
import abc
import concurrent.futures
import http.client
import socket
import time
import urllib.error
import urllib.request

from fate.util.abstract import abstractmember

from ipv6probe import task


CHUNK_SIZE = 8192

# slack allowed a fetch, beyond its own timeout, before it is abandoned
DEFAULT_GRACE_MS = 50


class FetchOutcome(abc.ABC):
    """Terminal outcome of a timed fetch.

    Instances of `FetchSuccess` evaluate to `True`; instances of
    `FetchFailure` and `FetchTimeout` evaluate to `False`.

    """
    _success_ = abstractmember()
    _timed_out_ = False

    def __init__(self, elapsed_ms):
        self.elapsed_ms = elapsed_ms

    @property
    def success(self):
        return self._success_

    @property
    def timed_out(self):
        return self._timed_out_

    def __bool__(self):
        return self._success_

    def __repr__(self):
        return f'<{self.__class__.__name__}: {self.elapsed_ms}ms>'


class FetchSuccess(FetchOutcome):

    _success_ = True


class FetchFailure(FetchOutcome):

    _success_ = False

    def __init__(self, elapsed_ms, error=None):
        super().__init__(elapsed_ms)
        self.error = error

    def __repr__(self):
        return f'<{self.__class__.__name__}: {self.error!r}>'


class FetchTimeout(FetchOutcome):

    _success_ = False
    _timed_out_ = True


def elapsed_since(start):
    """Whole milliseconds elapsed since `start` (`perf_counter`)."""
    return max(0, round((time.perf_counter() - start) * 1e3))


TIMEOUT_ERRORS = (socket.timeout, TimeoutError)


def is_timeout(exc):
    if isinstance(exc, urllib.error.URLError):
        exc = exc.reason

    return isinstance(exc, TIMEOUT_ERRORS)


def fetch_once(url, timeout_ms):
    """Retrieve `url` once, within `timeout_ms`, and report the outcome.

    Returns `FetchSuccess` for a complete response of status 2xx,
    `FetchTimeout` for a transfer not completed within `timeout_ms`, and
    `FetchFailure` for any other error (name resolution, connection,
    HTTP status, etc.).

    Network errors are *not* raised: they are the data of interest.

    """
    timeout = timeout_ms / 1e3

    start = time.perf_counter()

    deadline = start + timeout

    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            # read in chunks such that a trickling transfer is cut off at
            # the deadline (socket timeouts bound each read only)
            while response.read1(CHUNK_SIZE):
                if time.perf_counter() >= deadline:
                    return FetchTimeout(elapsed_since(start))
    except (OSError, http.client.HTTPException, ValueError) as exc:
        elapsed_ms = elapsed_since(start)

        if is_timeout(exc):
            return FetchTimeout(elapsed_ms)

        return FetchFailure(elapsed_ms, exc)

    elapsed_ms = elapsed_since(start)

    # the transfer is only a success if it completed within budget
    if elapsed_ms >= timeout_ms:
        return FetchTimeout(elapsed_ms)

    return FetchSuccess(elapsed_ms)


class TimedFetcher:
    """Concurrent issuer of timed fetches with completion callbacks.

    Fetches are submitted to a thread pool and the issuing call returns
    immediately:

        fetcher(url, timeout_ms, callback)

    Callbacks are *not* invoked by the pool's worker threads. Rather,
    `wait()` blocks the calling thread until all issued fetches have
    settled, and invokes each fetch's callback, with its `FetchOutcome`,
    from that thread, in order of settlement. As such, state touched by
    callbacks requires no synchronization.

    A fetch is settled either by its own outcome or by its deadline:
    `timeout_ms` (plus `grace_ms`) after issue. A fetch still running at
    its deadline (*e.g.* stalled in name resolution) is reported as
    `FetchTimeout` and its eventual result discarded.

    Use as a context manager to ensure the pool is shut down:

        with TimedFetcher() as fetcher:
            fetcher(url, 1200, print)
            fetcher.wait()

    """
    def __init__(self, fetch=None, max_workers=2, grace_ms=DEFAULT_GRACE_MS):
        self._fetch_ = fetch or fetch_once
        self._executor_ = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)
        self._grace_ = grace_ms / 1e3
        self._pending_ = {}

    def __call__(self, url, timeout_ms, callback):
        future = self._executor_.submit(self._fetch_, url, timeout_ms)
        deadline = time.perf_counter() + timeout_ms / 1e3 + self._grace_
        self._pending_[future] = (url, timeout_ms, deadline, callback)
        return future

    @property
    def pending(self):
        return len(self._pending_)

    def _settle_(self, future):
        (url, _timeout_ms, _deadline, callback) = self._pending_.pop(future)

        try:
            outcome = future.result()
        except Exception as exc:
            task.log.error(url=url, error=repr(exc), msg='unexpected fetch error')
            outcome = FetchFailure(None, exc)

        callback(outcome)

    def _expire_(self, future):
        (url, timeout_ms, _deadline, callback) = self._pending_.pop(future)

        future.cancel()

        task.log.debug(url=url, timeout_ms=timeout_ms, msg='fetch abandoned at deadline')

        callback(FetchTimeout(timeout_ms))

    def wait(self):
        """Block until all issued fetches settle, dispatching their
        callbacks from the calling thread.

        Callbacks may issue further fetches; these are awaited as well.

        """
        while self._pending_:
            earliest = min(deadline for (_url, _timeout_ms, deadline, _callback)
                           in self._pending_.values())

            (done, _not_done) = concurrent.futures.wait(
                list(self._pending_),
                timeout=max(0, earliest - time.perf_counter()),
                return_when=concurrent.futures.FIRST_COMPLETED,
            )

            for future in done:
                self._settle_(future)

            now = time.perf_counter()

            expired = [future for (future, (_url, _timeout_ms, deadline, _callback))
                       in self._pending_.items() if deadline <= now and not future.done()]

            for future in expired:
                self._expire_(future)

    def shutdown(self):
        # abandoned fetches must not hold up the host
        self._executor_.shutdown(wait=False)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.shutdown()
