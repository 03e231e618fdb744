"""Dual-probe engine measuring IPv6 reachability and latency."""
from .classify import (  # noqa: F401
    UNATTEMPTED,
    UNSUPPORTED,
    Measured,
    classify,
)

from .coordinator import ProbeCoordinator, ProbeTarget, Slot  # noqa: F401

from .emitter import ResultEmitter  # noqa: F401

from .fetch import (  # noqa: F401
    FetchFailure,
    FetchSuccess,
    FetchTimeout,
    TimedFetcher,
    fetch_once,
)

from .host import Lifecycle, Session  # noqa: F401
