"""Helpers common to measurements."""
from .connectivity import require_lan  # noqa: F401
