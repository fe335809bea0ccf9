"""Errors raised by the dispatch application layer."""


class DispatchError(Exception):
    """Base class for dispatch workflow errors."""


class NotFoundError(DispatchError, LookupError):
    """Referenced record does not exist or is not visible to the caller."""


class InvalidStateError(DispatchError, ValueError):
    """Operation is not allowed in the record's current state."""


class PermissionDeniedError(DispatchError):
    """Actor lacks the role required for the operation."""
