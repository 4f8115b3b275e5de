"""
Failures raised by the slot stores and the swap engine.
Raised in stores.py / engine.py and translated to HTTP responses in main.py.
"""


class SwapError(Exception):
    """Base exception for all swap engine errors."""
    status_code = 400


class NotFound(SwapError):
    """Raised when a slot or request does not exist, or the caller has no claim on it."""
    status_code = 404


class InvalidArgument(SwapError):
    """Raised for malformed or self-referential proposals and slot data."""
    status_code = 400


class SlotUnavailable(SwapError):
    """Raised when a slot is no longer SWAPPABLE (or changed hands) at commit time."""
    status_code = 400


class InvalidState(SwapError):
    """Raised when a transition is attempted from a status that does not allow it."""
    status_code = 409
