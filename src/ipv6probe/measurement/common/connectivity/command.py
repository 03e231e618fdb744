"""Commands to check local network connectivity."""
import abc
import ipaddress
import subprocess

from fate.util.abstract import abstractmember


DEFAULT_DEADLINE = 5
DEFAULT_ATTEMPTS = 3


def scoped_address(addr, iface):
    """Qualify IPv6 link-local `addr` with its interface `iface`.

    Other addresses are returned as given.

    """
    if '%' in addr:
        return addr

    try:
        address = ipaddress.ip_address(addr)
    except ValueError:
        return addr

    if address.version == 6 and address.is_link_local and iface:
        return f'{addr}%{iface}'

    return addr


def ping_dest_once(dest, deadline=DEFAULT_DEADLINE):
    """ping `dest` once (`-c 1`) with given `deadline` (`-w DEADLINE`).

    `deadline` defaults to `DEFAULT_DEADLINE` seconds.

    Raises `subprocess.CalledProcessError` if a response packet is not
    received after `deadline` or on any other network or ping error.

    """
    subprocess.run(
        (
            'ping',
            '-c', '1',
            '-w', str(deadline),
            dest,
        ),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        check=True,
    )


class PingResult(abc.ABC):

    _success_ = abstractmember()

    def __init__(self, returncode, attempts):
        self.returncode = returncode
        self.attempts = attempts

    def __bool__(self):
        return self._success_


class PingSuccess(PingResult):

    _success_ = True


class PingFailure(PingResult):

    _success_ = False


def ping_dest_succeed_once(dest, attempts=DEFAULT_ATTEMPTS, **kwargs):
    """ping `dest` *until* a single response is received.

    Returns `PingSuccess` if a response is received within `attempts`
    requests, or `PingFailure` if not, either reflecting the number of
    `attempts` made. `PingSuccess` evaluates to `True` and `PingFailure`
    to `False`.

    `attempts` defaults to `DEFAULT_ATTEMPTS`.

    See also: `ping_dest_once`.

    """
    if not isinstance(attempts, int):
        raise TypeError(f'attempts expected int not {attempts.__class__.__name__}')

    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for count in range(1, attempts + 1):
        try:
            ping_dest_once(dest, **kwargs)
        except subprocess.CalledProcessError as exc:
            failure_returncode = exc.returncode

            if failure_returncode > 1:
                # more than a response failure: quit and fail
                break
        else:
            return PingSuccess(0, count)

    return PingFailure(failure_returncode, count)
