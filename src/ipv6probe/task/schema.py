"""Support for construction of schema to validate and to provide
defaults to task input parameters.

"""
import ipaddress
import urllib.parse

from schema import (
    And,
    Optional,
    Or,
    Use,
)


#
# Schema composite "primitives"
#

Text = And(str, len)  # non-empty str


def valid_ip(value):
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    else:
        return True


def valid_ipv6(value):
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return False
    else:
        return address.version == 6


def valid_locator(value):
    """Whether `value` is an http(s) URL with a network location."""
    try:
        parts = urllib.parse.urlsplit(value)
    except ValueError:
        return False

    return parts.scheme.lower() in ('http', 'https') and bool(parts.netloc)


def Locator(name):
    """An http(s) URL or the empty string.

    The empty string (or `None`) indicates that the locator is not set,
    and is cleaned to `''`.

    """
    return And(
        Or(None, str),
        Use(lambda value: (value or '').strip()),
        lambda value: not value or valid_locator(value),
        error=f'{name}: must be an http(s) URL or empty',
    )


def NaturalNumber(name):
    return And(int,
               lambda value: not isinstance(value, bool) and value > 0,
               error=f"{name}: int must be greater than 0")


#
# Software defaults of result meta params
#
RESULT_META_DEFAULTS = {
    # flat: flatten results dict to one level
    'flat': True,

    # annotate: wrap results with metadata (time, etc.)
    'annotate': True,
}


def get_default(label):
    """Construct schema for globally-supported task parameters.

    As these global parameters concern the handling of task results, the
    text `label` of the measurement is required. This label is applied
    to the results, unless overridden or disabled by task-level
    parameter configuration.

    """
    default_flat = RESULT_META_DEFAULTS['flat']
    default_annotate = RESULT_META_DEFAULTS['annotate']

    default_result = lambda: {'annotate': default_annotate,  # noqa: E731
                              'label': label,
                              'flat': default_flat}

    return {
        # result: mapping
        Optional('result', default=default_result): {
            # flat: flatten results dict to one level
            Optional('flat', default=default_flat): bool,

            # label: wrap the above (whether flat or not) in a measurement label
            Optional('label', default=label): Or(False, None, Text),

            # annotate: wrap all of the above (whatever it is) with metadata (time, etc.)
            Optional('annotate', default=default_annotate): bool,
        },
    }


def extend(label, schema):
    """Construct a task parameter schema extending the globally-
    supported task parameter schema.

    The resulting `dict` will contain both schema for validating
    globally-supported task parameters *and* task-specific parameters
    specified by `schema`.

    See: `get_default`.

    """
    return {**get_default(label), **schema}
