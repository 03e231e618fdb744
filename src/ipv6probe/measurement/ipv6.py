"""Measure IPv6 support and latency, via address and via hostname."""
from schema import Optional

from ipv6probe import task
from ipv6probe.probe import ProbeCoordinator, Session, TimedFetcher
from ipv6probe.probe.coordinator import CONFIG

from .common import require_lan


PLUGIN = 'ipv6'

#
# result feature labels of the probe record fields
#
FEATURES = {
    'direct': 'latency',
    'resolved': 'lookup',
}


#
# params schema
#
PARAMS = task.schema.extend(PLUGIN, {
    # direct_target, resolved_target, timeout_ms: (see coordinator)
    **CONFIG,

    # secure: protocol of the embedding context is secure (https)
    Optional('secure', default=False): bool,
})


@task.param.require(PARAMS)
@require_lan
def main(params):
    """Measure IPv6 support and latency, via address and via hostname.

    The local network is queried first to ensure operation.
    (See: `require_lan`.)

    Two fetches are then raced, concurrently, each subject to the
    configured `timeout_ms`:

    * of `direct_target`: a URL of an IPv6 address literal
    * of `resolved_target`: a URL of a hostname resolving to an IPv6
      address (optional)

    The scheme of each target is rewritten to that of the embedding
    context (`secure`).

    Each probe is reported as its latency in milliseconds, `NS` (not
    supported) should it fail or time out, or `NA` (not attempted)
    should it lack a target. Results are written out according to
    configuration (`result`).

    Lacking `direct_target`, no test is run and no results are written.

    """
    beacons = []

    session = Session(beacons.append, secure=params['secure'])

    with TimedFetcher() as fetcher:
        probe = session.register(PLUGIN, ProbeCoordinator(
            fetcher,
            session.lifecycle,
            session.channel(PLUGIN),
            secure=session.secure,
        ))

        probe.initialize(params)

        session.ready()

        fetcher.wait()

    if not beacons:
        task.log.critical(complete=probe.is_complete(), msg="measurement did not complete")
        return task.status.software_error

    (beacon,) = beacons

    try:
        record = beacon[PLUGIN]
    except KeyError:
        task.log.critical("no IPv6 test was run")
        return task.status.conf_error

    task.log.info(**record)

    # prepare results
    results = {FEATURES[field]: value for (field, value) in record.items()}

    # flatten results
    if params['result']['flat']:
        results = task.result.flatten(results, PLUGIN)
    else:
        results = {PLUGIN: results}

    # write results
    task.result.write(results,
                      label=params['result']['label'],
                      annotate=params['result']['annotate'])

    return task.status.success
