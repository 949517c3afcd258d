"""History persistence errors."""


class StateError(Exception):
    """Raised when processing history cannot be read or written."""
