"""Measurement decorators to ensure network connectivity."""
import functools
import shutil
import subprocess

import netifaces

from ipv6probe import task

from . import command


#
# address families of the default gateway, in order of preference
#
# (the IPv4 gateway is preferred: that the LAN is operational is at
# issue here, *not* whether it routes IPv6)
#
GATEWAY_FAMILIES = (
    ('IPv4', netifaces.AF_INET),
    ('IPv6', netifaces.AF_INET6),
)


class RequirementError(Exception):

    def __init__(self, returncode):
        super().__init__(returncode)
        self.returncode = returncode


def default_gateway(families=GATEWAY_FAMILIES):
    """Look up the host's default gateway.

    Returns a tuple of the form `(family_name, address, interface)`
    for the first address family of `families` with a default gateway,
    or `None`.

    """
    default_gateways = netifaces.gateways().get('default') or {}

    for (family_name, family) in families:
        try:
            (gateway_addr, iface) = default_gateways[family][:2]
        except (KeyError, ValueError):
            continue

        return (family_name, gateway_addr, iface)

    return None


class require_lan:
    """Decorator to extend a network measurement function with
    preliminary network accessibility checks.

    `require_lan` wraps the decorated function such that it will first
    ping the host (`localhost`), and then the default gateway, prior to
    proceeding with its own functionality.

    The default gateway of either address family suffices, such that
    hosts lacking IPv6 connectivity (of interest to IPv6 measurements)
    and hosts lacking IPv4 connectivity may proceed alike:

        @require_lan
        def main():
            # Now we know at least that the LAN is operational.
            #
            # Whether the Internet is reachable via IPv6 is another
            # matter ...
            ...

    """
    RequirementError = RequirementError

    def __init__(self, func):
        # assign func's __module__, __name__, etc.
        # (but DON'T update __dict__)
        #
        # (also assigns __wrapped__)
        functools.update_wrapper(self, func, updated=())

    def __repr__(self):
        return repr(self.__wrapped__)

    def __call__(self, *args, **kwargs):
        try:
            self.check_requirements()
        except self.RequirementError as exc:
            return exc.returncode

        return self.__wrapped__(*args, **kwargs)

    def check_requirements(self):
        """Check for ping executable, localhost and gateway."""

        # ensure ping on PATH
        if shutil.which('ping') is None:
            task.log.critical("ping executable not found")
            raise self.RequirementError(task.status.file_missing)

        # check network interface up
        try:
            command.ping_dest_once('localhost')
        except subprocess.CalledProcessError:
            task.log.critical(
                dest='localhost',
                status='Error',
                msg="host network interface down",
            )
            raise self.RequirementError(task.status.os_error)
        else:
            task.log.debug(dest='localhost', status='OK')

        # check route to gateway
        gateway = default_gateway()

        if gateway is None:
            task.log.critical("default gateway not found")
            raise self.RequirementError(task.status.os_error)

        (family_name, gateway_addr, iface) = gateway

        gateway_up = command.ping_dest_succeed_once(command.scoped_address(gateway_addr, iface))

        if gateway_up:
            task.log.log(
                'DEBUG' if gateway_up.attempts == 1 else 'WARNING',
                dest='gateway',
                family=family_name,
                addr=gateway_addr,
                tries=gateway_up.attempts,
                status='OK',
            )
        else:
            task.log.critical(
                dest='gateway',
                family=family_name,
                addr=gateway_addr,
                tries=gateway_up.attempts,
                status=f'Error ({gateway_up.returncode})',
                msg="network gateway inaccessible",
            )
            raise self.RequirementError(task.status.no_host)
