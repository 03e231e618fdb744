"""Classification of probe outcomes into report values."""
from dataclasses import dataclass


class Classification:
    """Report value of a single probe.

    Serialized to its external form, `"NA"`, `"NS"` or integer
    milliseconds, only via `value`.

    """
    code = None

    @property
    def value(self):
        return self.code

    def __repr__(self):
        return f'<{self.__class__.__name__}: {self.value}>'


class Unattempted(Classification):
    """test not attempted: no target configured"""

    code = 'NA'


class Unsupported(Classification):
    """not supported: could not connect or resolve within budget"""

    code = 'NS'


@dataclass(frozen=True, repr=False)
class Measured(Classification):
    """latency of a successful probe"""

    ms: int

    def __post_init__(self):
        if self.ms < 0:
            raise ValueError(f"latency may not be negative: {self.ms}")

    @property
    def value(self):
        return self.ms


UNATTEMPTED = Unattempted()

UNSUPPORTED = Unsupported()


def classify(outcome):
    """Map the terminal state of a probe slot to its `Classification`.

    `outcome` is `None` for a slot which was never attempted, and
    otherwise its settled `FetchOutcome`.

    The outcome's own verdict (success or timeout) is authoritative:
    elapsed time is relabeled, never compared against the timeout.

    """
    if outcome is None:
        return UNATTEMPTED

    if outcome.timed_out or not outcome.success:
        return UNSUPPORTED

    return Measured(int(outcome.elapsed_ms))
