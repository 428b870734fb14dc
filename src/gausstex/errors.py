"""
Exception types raised by gausstex.

ValidationError and ResourceError are raised before any stage buffer exists,
so a failed conversion never leaves partial artifacts behind.
"""

from __future__ import annotations


class GaussTexError(Exception):
    """Base class for all gausstex errors."""


class ValidationError(GaussTexError, ValueError):
    """Input image or configuration rejected before conversion starts."""


class ResourceError(GaussTexError, RuntimeError):
    """The parallel execution backend could not be started."""
