from ipv6probe.probe import FetchSuccess, Lifecycle, ProbeCoordinator, ResultEmitter, Session


class StubPlugin:

    def __init__(self, complete=False):
        self.complete = complete

    def is_complete(self):
        return self.complete


def test_lifecycle_order():
    lifecycle = Lifecycle()
    calls = []

    lifecycle.subscribe('page_ready', lambda: calls.append('first'))
    lifecycle.subscribe('page_ready', lambda: calls.append('second'))
    lifecycle.subscribe('unload', lambda: calls.append('never'))

    lifecycle.fire('page_ready')

    assert calls == ['first', 'second']


def test_beacon_gated_on_all_plugins():
    """The beacon is sent once all plugins, not merely the reporter, are complete."""
    beacons = []
    session = Session(beacons.append)
    sibling = session.register('sibling', StubPlugin())
    session.register('other', StubPlugin(complete=True))

    session.report('other', {'value': 1})

    assert beacons == []

    sibling.complete = True
    session.ready()

    assert beacons == [{'other': {'value': 1}}]


def test_beacon_sent_once():
    beacons = []
    session = Session(beacons.append)
    session.register('plugin', StubPlugin(complete=True))

    session.report('plugin', {'value': 1})
    session.report('plugin', {'value': 2})
    session.ready()

    assert beacons == [{'plugin': {'value': 1}}]
    assert not session.send_beacon()


def test_aborted_plugin_does_not_block_siblings(fetch):
    """A coordinator lacking configuration completes, letting the beacon through."""
    beacons = []
    session = Session(beacons.append)
    session.register('sibling', StubPlugin(complete=True))

    probe = session.register('ipv6', ProbeCoordinator(fetch, session.lifecycle,
                                                      session.channel('ipv6')))
    probe.initialize({'direct_target': ''})

    assert session.is_complete()

    session.ready()

    assert beacons == [{}]
    assert fetch.calls == []


def test_session_with_coordinator(fetch):
    beacons = []
    session = Session(beacons.append, secure=True)

    probe = session.register('ipv6', ProbeCoordinator(fetch, session.lifecycle,
                                                      session.channel('ipv6'),
                                                      secure=session.secure))
    probe.initialize({'direct_target': 'http://[2001:db8::1]/p'})

    session.ready()

    assert beacons == []
    assert fetch.urls == ['https://[2001:db8::1]/p']

    fetch.resolve('https://[2001:db8::1]/p', FetchSuccess(33))

    assert beacons == [{'ipv6': {'direct': 33, 'resolved': 'NA'}}]


def test_emitter_fires_once():
    records = []
    emitter = ResultEmitter(records.append)

    assert emitter.emit(FetchSuccess(5), None) == {'direct': 5, 'resolved': 'NA'}
    assert emitter.emit(None, None) is None

    assert records == [{'direct': 5, 'resolved': 'NA'}]
    assert emitter.emitted
