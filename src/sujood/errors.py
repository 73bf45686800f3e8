from __future__ import annotations


class SujoodError(Exception):
    """Base class for prayer-time engine failures."""


class InvalidContext(SujoodError, ValueError):
    """Raised when a location/method context fails validation."""


class CalculationError(SujoodError, RuntimeError):
    """Raised when prayer times cannot be produced for a date and location."""


class CacheCorruption(SujoodError, ValueError):
    """Raised when a cached time entry cannot be parsed."""
