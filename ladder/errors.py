"""
ladder/errors.py - Typed errors raised by the ladder engine.

Every failed operation raises one of these and leaves state untouched.
Callers surface str(error) verbatim.
"""


class LadderError(Exception):
    """Base class for all engine errors."""


class NotFoundError(LadderError):
    """A channel, competitor, admin or challenge does not exist."""


class AlreadyExistsError(LadderError):
    """The thing being created is already there."""


class InvalidArgumentError(LadderError):
    """Bad position, mode, action, duration or oversize text."""


class PermissionDeniedError(LadderError):
    """Caller is not allowed to do this."""


class StateConflictError(LadderError):
    """Operation conflicts with current state (busy player, ineligible challenge, ...)."""


class LastAdminError(StateConflictError):
    """Removing this admin would leave the channel without any."""
