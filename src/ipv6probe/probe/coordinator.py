"""Coordination of the dual IPv6 probe: connection to an IPv6 address,
and connection via a hostname resolving to an IPv6 address.

"""
import enum
import functools
import re
import urllib.parse
from dataclasses import dataclass

from schema import Optional, Schema, SchemaError

from ipv6probe import task

from .emitter import ResultEmitter


DEFAULT_TIMEOUT_MS = 1200

READY_EVENT = 'page_ready'


#
# config schema
#
# shared by the measurement task's params schema
#
CONFIG = {
    # direct_target: URL of an IPv6 address literal (required to run)
    Optional('direct_target', default=''): task.schema.Locator('direct_target'),

    # resolved_target: URL of a hostname resolving to an IPv6 address
    Optional('resolved_target', default=''): task.schema.Locator('resolved_target'),

    # timeout_ms: per-probe timeout
    Optional('timeout_ms', default=DEFAULT_TIMEOUT_MS): task.schema.NaturalNumber('timeout_ms'),
}


class Slot(str, enum.Enum):
    """Named probe roles."""

    direct = 'direct'
    resolved = 'resolved'

    def __str__(self):
        return self.value


class SlotStatus(enum.Enum):

    unset = 'unset'
    pending = 'pending'
    settled = 'settled'


SCHEME_PATTERN = re.compile(r'^https?:', re.I)


def match_scheme(url, secure):
    """Rewrite the http(s) scheme of `url` to match the embedding
    context: `https` if `secure` and otherwise `http`.

    """
    return SCHEME_PATTERN.sub('https:' if secure else 'http:', url, count=1)


@dataclass(frozen=True)
class ProbeTarget:
    """Scheme-normalized locator and timeout of a single probe."""

    url: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def for_context(cls, url, timeout_ms, secure):
        return cls(match_scheme(url, secure), timeout_ms)

    @property
    def host(self):
        return urllib.parse.urlsplit(self.url).hostname


class ProbeSlot:
    """State of a single probe role: `unset` -> `pending` -> `settled`."""

    def __init__(self, slot, target=None):
        self.slot = slot
        self.target = target
        self.status = SlotStatus.unset
        self.outcome = None

    @property
    def configured(self):
        return self.target is not None

    @property
    def done(self):
        return not self.configured or self.status is SlotStatus.settled

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.slot}: {self.status.value}>'


class ProbeCoordinator:
    """Race two independent, timed fetches, `direct` and `resolved`,
    and report once both have settled.

    Collaborators are given at construction:

    * `fetch`: callable issuing a timed fetch without blocking, of the
      form `fetch(url, timeout_ms, callback)`, and later invoking
      `callback(outcome)` exactly once
    * `lifecycle`: event hub offering `subscribe(event, callback)`,
      which triggers `start` upon `page_ready`
    * `channel`: reporting callable to which the final record is handed
    * `secure`: whether the embedding context's protocol is secure

    The coordinator is complete (see `is_complete`) once every slot with
    a configured target has settled, or immediately upon invalid
    configuration. Its final record is emitted exactly once.

    """
    def __init__(self, fetch, lifecycle, channel, secure=False):
        self.fetch = fetch
        self.lifecycle = lifecycle
        self.secure = secure
        self.emitter = ResultEmitter(channel)
        self.slots = {slot: ProbeSlot(slot) for slot in Slot}
        self.complete = False

    def initialize(self, config):
        """Validate `config` and prepare the probe targets.

        An invalid configuration, or one lacking `direct_target`, abandons
        the measurement: the coordinator is marked complete, so as not to
        block others, and no network activity is performed.

        """
        try:
            config = Schema(CONFIG, ignore_extra_keys=True).validate(dict(config))
        except SchemaError as exc:
            task.log.critical(error=str(exc), msg="configuration error: cannot run IPv6 test")
            self.complete = True
            return self

        if not config['direct_target']:
            task.log.warning("direct_target is not set: cannot run IPv6 test")
            self.complete = True
            return self

        if not config['resolved_target']:
            task.log.warning("resolved_target is not set: will skip hostname test")

        for slot in Slot:
            url = config[f'{slot}_target']

            if url:
                self.slots[slot].target = ProbeTarget.for_context(url,
                                                                  config['timeout_ms'],
                                                                  self.secure)

        self._check_hosts_()

        self.lifecycle.subscribe(READY_EVENT, self.start)

        return self

    def _check_hosts_(self):
        direct = self.slots[Slot.direct].target

        if not task.schema.valid_ipv6(direct.host):
            task.log.warning(url=direct.url,
                             msg="direct_target host is not an IPv6 address: "
                                 "results may reflect name resolution")

        resolved = self.slots[Slot.resolved].target

        if resolved is not None and task.schema.valid_ip(resolved.host):
            task.log.warning(url=resolved.url,
                             msg="resolved_target host is an IP address: "
                                 "results will not reflect name resolution")

    @property
    def targets(self):
        return {slot: state.target for (slot, state) in self.slots.items() if state.configured}

    def start(self, *_args):
        """Issue a timed fetch for each configured, unstarted slot.

        Returns immediately. Outcomes are delivered to `on_probe_outcome`.

        """
        for state in self.slots.values():
            if not state.configured or state.status is not SlotStatus.unset:
                continue

            state.status = SlotStatus.pending

            task.log.debug(slot=str(state.slot), url=state.target.url,
                           timeout_ms=state.target.timeout_ms, status='issued')

            self.fetch(state.target.url,
                       state.target.timeout_ms,
                       functools.partial(self.on_probe_outcome, state.slot))

    def on_probe_outcome(self, slot, outcome):
        """Record the terminal `outcome` of `slot`.

        Only the first outcome of a pending slot is recorded; outcomes
        arriving after completion are ignored. Upon recording the last
        outstanding outcome, the coordinator completes and the record is
        emitted.

        """
        state = self.slots[Slot(slot)]

        if self.complete or state.status is not SlotStatus.pending:
            task.log.debug(slot=str(state.slot), status=state.status.value,
                           complete=self.complete, msg='late outcome ignored')
            return

        state.outcome = outcome
        state.status = SlotStatus.settled

        task.log.debug(
            slot=str(state.slot),
            url=state.target.url,
            status='OK' if outcome else ('Timeout' if outcome.timed_out else 'Error'),
            elapsed_ms=outcome.elapsed_ms,
            error=getattr(outcome, 'error', None),
        )

        if self.done:
            self.complete = True
            self.emitter.emit(self.slots[Slot.direct].outcome,
                              self.slots[Slot.resolved].outcome)

    @property
    def done(self):
        return all(state.done for state in self.slots.values())

    @property
    def record(self):
        return self.emitter.record

    def is_complete(self):
        return self.complete
