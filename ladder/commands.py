"""
ladder/commands.py - Typed bot commands and the dispatcher that runs them.

Each command is its own pydantic model tagged by ``name``; the Command union
validates a raw payload into exactly one of them before anything touches an
engine. CommandDispatcher maps a validated command onto ChannelRegistry /
LadderEngine calls and returns the text to show in chat.

Permission checks live in the engine, except for deleting a channel, which
the registry knows nothing about.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Callable, Literal, Union

import yaml
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from . import __version__
from .challenges import (
    ACTION_CANCEL,
    ACTION_FORFEIT,
    ACTION_LOST,
    ACTION_TIMED_OUT,
    ACTION_WON,
    MODE_PYRAMID,
    normalize_mode,
)
from .errors import InvalidArgumentError, LadderError, PermissionDeniedError
from .registry import ChannelRegistry
from .reports import (
    render_challenges,
    render_history,
    render_settings,
    render_standings,
)

logger = logging.getLogger(__name__)

# People type all sorts of things for a result
RESULT_ALIASES = {
    "w": ACTION_WON,
    "win": ACTION_WON,
    "won": ACTION_WON,
    "l": ACTION_LOST,
    "loss": ACTION_LOST,
    "lose": ACTION_LOST,
    "lost": ACTION_LOST,
    "f": ACTION_FORFEIT,
    "forfeit": ACTION_FORFEIT,
    "timeout": ACTION_TIMED_OUT,
    "timed out": ACTION_TIMED_OUT,
    "timed-out": ACTION_TIMED_OUT,
}


def normalize_result(value: str) -> str:
    result = RESULT_ALIASES.get(value.strip().lower())
    if result is None:
        raise InvalidArgumentError("Please use one of: w, won, l, lost, f, forfeit, timeout.")
    return result


# ============================================================================
# Command variants
# ============================================================================


class HelpCommand(BaseModel):
    name: Literal["help"] = "help"


class InitCommand(BaseModel):
    name: Literal["init"] = "init"


class DeleteTournamentCommand(BaseModel):
    name: Literal["delete_tournament"] = "delete_tournament"


class RegisterCommand(BaseModel):
    name: Literal["register"] = "register"
    user: str | None = None  # admin only
    gamename: str | None = None


class UnregisterCommand(BaseModel):
    name: Literal["unregister"] = "unregister"
    user: str | None = None  # admin only


class ChallengeCommand(BaseModel):
    name: Literal["challenge"] = "challenge"
    user: str


class ResultCommand(BaseModel):
    name: Literal["result"] = "result"
    result: str

    @field_validator("result")
    @classmethod
    def _known_result(cls, value: str) -> str:
        try:
            return normalize_result(value)
        except InvalidArgumentError as e:
            raise ValueError(str(e)) from e


class CancelCommand(BaseModel):
    name: Literal["cancel"] = "cancel"


class ForfeitCommand(BaseModel):
    name: Literal["forfeit"] = "forfeit"


class MoveCommand(BaseModel):
    name: Literal["move"] = "move"
    user: str
    position: int = Field(ge=1)


class StandingsCommand(BaseModel):
    name: Literal["standings"] = "standings"


class ActiveChallengesCommand(BaseModel):
    name: Literal["active_challenges"] = "active_challenges"


class HistoryCommand(BaseModel):
    name: Literal["history"] = "history"
    limit: int = Field(default=10, ge=1, le=100)


class UserSettingsCommand(BaseModel):
    name: Literal["user_settings"] = "user_settings"
    user: str | None = None  # admin only
    gamename: str | None = None
    status: Literal["active", "inactive"] | None = None
    notes: str | None = None


class SystemSettingsCommand(BaseModel):
    name: Literal["system_settings"] = "system_settings"
    mode: str | None = None  # ladder, pyramid or open
    timeout: int | None = Field(default=None, ge=1)  # days
    admin_add: str | None = None
    admin_remove: str | None = None
    notes: str | None = None

    @property
    def is_query(self) -> bool:
        return all(
            v is None
            for v in (self.mode, self.timeout, self.admin_add, self.admin_remove, self.notes)
        )

    @field_validator("mode")
    @classmethod
    def _known_mode(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            return normalize_mode(value)
        except InvalidArgumentError as e:
            raise ValueError(str(e)) from e


class PrintRawCommand(BaseModel):
    name: Literal["printraw"] = "printraw"


Command = Annotated[
    Union[
        HelpCommand,
        InitCommand,
        DeleteTournamentCommand,
        RegisterCommand,
        UnregisterCommand,
        ChallengeCommand,
        ResultCommand,
        CancelCommand,
        ForfeitCommand,
        MoveCommand,
        StandingsCommand,
        ActiveChallengesCommand,
        HistoryCommand,
        UserSettingsCommand,
        SystemSettingsCommand,
        PrintRawCommand,
    ],
    Field(discriminator="name"),
]

_command_adapter = TypeAdapter(Command)


def parse_command(data: dict) -> BaseModel:
    """Validate a raw payload into one command variant.

    Raises InvalidArgumentError with pydantic's first complaint.
    """
    try:
        return _command_adapter.validate_python(data)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first["loc"])
        if not where:
            raise InvalidArgumentError(f"Invalid command: {first['msg']}") from e
        raise InvalidArgumentError(f"Invalid command ({where}): {first['msg']}") from e


COMMAND_HELP = {
    "help": "Help is on the way!",
    "init": "Initialize a 1v1 ranking tournament (one per channel).",
    "delete_tournament": "Delete this channel's tournament (admin only).",
    "register": "Register yourself, or another user (admin only).",
    "unregister": "Unregister yourself, or another user (admin only).",
    "challenge": "Challenge a user for their position.",
    "result": "Report the result of your challenge (won or lost).",
    "cancel": "Cancel your challenge (challenger only).",
    "forfeit": "Forfeit a challenge against you (defender only).",
    "move": "Move a user to a different position (admin only).",
    "standings": "Show the current standings.",
    "active_challenges": "Show the active challenges.",
    "history": "Show recent results.",
    "user_settings": "Set your game name, status or notes.",
    "system_settings": "Show or change channel settings (admin only to change).",
    "printraw": "Dump the raw channel data.",
}

# Noisy listings that shouldn't ping everyone they mention
QUIET_COMMANDS = {"standings", "active_challenges", "history"}


# ============================================================================
# Dispatcher
# ============================================================================


@dataclass
class CommandReply:
    """What to post back, and whether state changed (so the caller persists)."""

    content: str
    mutated: bool = False
    quiet: bool = False


class CommandDispatcher:
    """Runs validated commands against the registry it was given."""

    def __init__(self, registry: ChannelRegistry):
        self.registry = registry
        self._handlers: dict[str, Callable[[str, str, BaseModel], CommandReply]] = {
            "help": self._help,
            "init": self._init,
            "delete_tournament": self._delete_tournament,
            "register": self._register,
            "unregister": self._unregister,
            "challenge": self._challenge,
            "result": self._result,
            "cancel": self._cancel,
            "forfeit": self._forfeit,
            "move": self._move,
            "standings": self._standings,
            "active_challenges": self._active_challenges,
            "history": self._history,
            "user_settings": self._user_settings,
            "system_settings": self._system_settings,
            "printraw": self._printraw,
        }

    def dispatch(self, channel_id: str, caller: str, command: BaseModel) -> CommandReply:
        """Run one command. LadderErrors propagate with their message intact."""
        handler = self._handlers[command.name]
        try:
            reply = handler(channel_id, caller, command)
        except LadderError as e:
            logger.info(f"[{channel_id}] {command.name} by {caller} rejected: {e}")
            raise
        reply.quiet = command.name in QUIET_COMMANDS
        return reply

    # ------------------------------------------------------------------
    # Channel lifecycle
    # ------------------------------------------------------------------

    def _help(self, channel_id, caller, command) -> CommandReply:
        lines = ["Commands:"]
        lines += [f"  /{name}: {text}" for name, text in COMMAND_HELP.items()]
        lines.append(f"Version: {__version__}")
        return CommandReply("\n".join(lines))

    def _init(self, channel_id, caller, command) -> CommandReply:
        self.registry.add_channel(channel_id, caller)
        return CommandReply("Channel initialized!", mutated=True)

    def _delete_tournament(self, channel_id, caller, command) -> CommandReply:
        engine = self.registry.get(channel_id)
        if not engine.is_admin(caller):
            raise PermissionDeniedError("You must be an admin to delete the tournament.")
        self.registry.remove_channel(channel_id)
        return CommandReply("Channel deleted!", mutated=True)

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def _register(self, channel_id, caller, command: RegisterCommand) -> CommandReply:
        engine = self.registry.get(channel_id)
        position = engine.register(caller, command.user, command.gamename or "")
        if command.user:
            return CommandReply(f"Registered <@{command.user}> at position {position}!", mutated=True)
        return CommandReply(f"Registered! You are at position {position}.", mutated=True)

    def _unregister(self, channel_id, caller, command: UnregisterCommand) -> CommandReply:
        engine = self.registry.get(channel_id)
        engine.unregister(caller, command.user)
        return CommandReply("Unregistered!", mutated=True)

    def _move(self, channel_id, caller, command: MoveCommand) -> CommandReply:
        engine = self.registry.get(channel_id)
        old = engine.move(caller, command.user, command.position)
        return CommandReply(
            f"Moved <@{command.user}> from position {old} to position {command.position}.",
            mutated=True,
        )

    def _user_settings(self, channel_id, caller, command: UserSettingsCommand) -> CommandReply:
        engine = self.registry.get(channel_id)
        identity = command.user or caller
        if command.gamename is None and command.status is None and command.notes is None:
            player = engine.competitor(identity)
            return CommandReply(
                f"<@{player.identity}>: position {player.position}, {player.status}"
                + (f", game name {player.display_name}" if player.display_name else "")
                + (f", notes: {player.notes}" if player.notes else "")
            )
        engine.update_player(
            caller,
            identity,
            display_name=command.gamename,
            status=command.status,
            notes=command.notes,
        )
        return CommandReply("Settings saved!", mutated=True)

    # ------------------------------------------------------------------
    # Challenges
    # ------------------------------------------------------------------

    def _challenge(self, channel_id, caller, command: ChallengeCommand) -> CommandReply:
        engine = self.registry.get(channel_id)
        challenge = engine.start_challenge(caller, command.user)
        return CommandReply(
            f"Challenge started! <@{caller}> vs <@{command.user}>, "
            f"due by {challenge.deadline.strftime('%Y-%m-%d')}.",
            mutated=True,
        )

    def _result(self, channel_id, caller, command: ResultCommand) -> CommandReply:
        engine = self.registry.get(channel_id)
        return CommandReply(engine.resolve(caller, command.result), mutated=True)

    def _cancel(self, channel_id, caller, command) -> CommandReply:
        engine = self.registry.get(channel_id)
        return CommandReply(engine.resolve(caller, ACTION_CANCEL), mutated=True)

    def _forfeit(self, channel_id, caller, command) -> CommandReply:
        engine = self.registry.get(channel_id)
        return CommandReply(engine.resolve(caller, ACTION_FORFEIT), mutated=True)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def _standings(self, channel_id, caller, command) -> CommandReply:
        engine = self.registry.get(channel_id)
        show_tiers = engine.settings().mode == MODE_PYRAMID
        return CommandReply(render_standings(engine.standings(), show_tiers=show_tiers))

    def _active_challenges(self, channel_id, caller, command) -> CommandReply:
        engine = self.registry.get(channel_id)
        return CommandReply(render_challenges(engine.active_challenges()))

    def _history(self, channel_id, caller, command: HistoryCommand) -> CommandReply:
        engine = self.registry.get(channel_id)
        return CommandReply(render_history(engine.history(command.limit)))

    def _printraw(self, channel_id, caller, command) -> CommandReply:
        engine = self.registry.get(channel_id)
        return CommandReply(yaml.safe_dump(engine.snapshot(), sort_keys=False))

    # ------------------------------------------------------------------
    # Channel settings
    # ------------------------------------------------------------------

    def _system_settings(self, channel_id, caller, command: SystemSettingsCommand) -> CommandReply:
        engine = self.registry.get(channel_id)
        if command.is_query:
            return CommandReply(render_settings(engine.settings()))
        changes = engine.configure(
            caller,
            mode=command.mode,
            timeout_days=command.timeout,
            admin_add=command.admin_add,
            admin_remove=command.admin_remove,
            notes=command.notes,
        )
        return CommandReply("\n".join(changes), mutated=True)
