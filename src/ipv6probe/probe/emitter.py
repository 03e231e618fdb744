"""Emission of the final probe record to the reporting channel."""
from ipv6probe import task

from .classify import classify


class ResultEmitter:
    """Hand the classified record of a measurement cycle to `channel`
    exactly once.

    The record is a `dict` of the form:

        {'direct': "NA" | "NS" | int, 'resolved': "NA" | "NS" | int}

    Subsequent calls to `emit` are ignored (and return `None`).

    """
    def __init__(self, channel):
        self.channel = channel
        self.record = None

    @property
    def emitted(self):
        return self.record is not None

    def emit(self, direct, resolved):
        if self.emitted:
            task.log.debug(record=self.record, msg='record already emitted: ignored')
            return None

        self.record = {
            'direct': classify(direct).value,
            'resolved': classify(resolved).value,
        }

        self.channel(self.record)

        return self.record
