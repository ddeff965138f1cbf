"""
ladder - Per-channel challenge ladders for chat communities

Players register, challenge the players above them, report results and
climb. One LadderEngine per channel, held by a ChannelRegistry.
"""

__version__ = "0.1.0"

from .errors import (
    LadderError,
    NotFoundError,
    AlreadyExistsError,
    InvalidArgumentError,
    PermissionDeniedError,
    StateConflictError,
    LastAdminError,
)

from .engine import (
    LadderEngine,
    StandingRow,
    ChannelSettings,
)

from .registry import ChannelRegistry

from .commands import (
    Command,
    CommandDispatcher,
    CommandReply,
    parse_command,
)

from .chat import parse_message

__all__ = [
    # Version
    "__version__",
    # Errors
    "LadderError",
    "NotFoundError",
    "AlreadyExistsError",
    "InvalidArgumentError",
    "PermissionDeniedError",
    "StateConflictError",
    "LastAdminError",
    # Engine
    "LadderEngine",
    "StandingRow",
    "ChannelSettings",
    "ChannelRegistry",
    # Commands
    "Command",
    "CommandDispatcher",
    "CommandReply",
    "parse_command",
    "parse_message",
]
