"""Measurement task helpers compatible with the Fate scheduler."""
from fate.task import log  # noqa: F401

from . import param, result, schema  # noqa: F401

from .sysexit import status  # noqa: F401
