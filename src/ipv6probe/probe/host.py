"""Minimal measurement host: lifecycle events, per-plugin reporting
channels and a shared completion gate.

"""
import functools
from collections import defaultdict

from ipv6probe import task


class Lifecycle:
    """Event hub through which plugins subscribe to host events."""

    def __init__(self):
        self._subscribers_ = defaultdict(list)

    def subscribe(self, event, callback):
        self._subscribers_[event].append(callback)

    def fire(self, event, *args):
        for callback in list(self._subscribers_[event]):
            callback(*args)


class Session:
    """Host of measurement plugins sharing a single report (beacon).

    Plugins register under a name and must offer `is_complete()`. Each
    reports its fields via its `channel`. The beacon, a mapping of
    plugin names to their fields, is handed to `transport` exactly
    once, and only once *all* registered plugins are complete.

    """
    def __init__(self, transport, secure=False):
        self.transport = transport
        self.secure = secure
        self.lifecycle = Lifecycle()
        self.plugins = {}
        self.vars = {}
        self.sent = False

    def register(self, name, plugin):
        self.plugins[name] = plugin
        return plugin

    def channel(self, name):
        return functools.partial(self.report, name)

    def report(self, name, fields):
        if self.sent:
            task.log.debug(plugin=name, msg='beacon already sent: report ignored')
            return

        # replace any prior report of this plugin
        self.vars.pop(name, None)
        self.vars[name] = dict(fields)

        self.send_beacon()

    def is_complete(self):
        return all(plugin.is_complete() for plugin in self.plugins.values())

    def ready(self):
        self.lifecycle.fire('page_ready')
        self.send_beacon()

    def send_beacon(self):
        if self.sent or not self.is_complete():
            return False

        self.sent = True
        self.transport(dict(self.vars))

        return True
