"""
ladder/chat.py - Turn a raw chat message into a typed command.

    !challenge <@123>        -> ChallengeCommand(user="123")
    !result w                -> ResultCommand(result="won")
    !set mode pyramid        -> SystemSettingsCommand(mode="pyramid")
    !move <@123> 4           -> MoveCommand(user="123", position=4)

Messages that don't start with the prefix are not for us and give None.
Anything else that doesn't parse raises InvalidArgumentError.
"""

import re
import shlex

from pydantic import BaseModel

from .commands import parse_command
from .errors import InvalidArgumentError

MENTION_RE = re.compile(r"^<@!?(\d+|[^>]+)>$")

# Word typed in chat -> command name
COMMAND_ALIASES = {
    "help": "help",
    "init": "init",
    "delete_tournament": "delete_tournament",
    "register": "register",
    "join": "register",
    "add": "register",
    "unregister": "unregister",
    "leave": "unregister",
    "remove": "unregister",
    "quit": "unregister",
    "challenge": "challenge",
    "result": "result",
    "results": "result",
    "cancel": "cancel",
    "forfeit": "forfeit",
    "move": "move",
    "standings": "standings",
    "ladder": "standings",
    "active_challenges": "active_challenges",
    "active": "active_challenges",
    "challenges": "active_challenges",
    "history": "history",
    "me": "user_settings",
    "user_settings": "user_settings",
    "set": "system_settings",
    "settings": "system_settings",
    "system_settings": "system_settings",
    "printraw": "printraw",
}

# `!set <key> <value>` keys
SETTING_KEYS = {
    "mode": "mode",
    "timeout": "timeout",
    "admin": "admin_add",
    "admin_add": "admin_add",
    "unadmin": "admin_remove",
    "admin_remove": "admin_remove",
    "notes": "notes",
}

# `!me <key> <value>` keys
PLAYER_KEYS = {
    "gamename": "gamename",
    "name": "gamename",
    "status": "status",
    "notes": "notes",
}


def parse_mention(token: str) -> str:
    """<@123> or <@!123> -> "123". Raises InvalidArgumentError otherwise."""
    match = MENTION_RE.match(token)
    if not match:
        raise InvalidArgumentError(f"Expected a user mention like <@123>, got '{token}'")
    return match.group(1)


def _is_mention(token: str) -> bool:
    return MENTION_RE.match(token) is not None


def _split(text: str) -> list[str]:
    try:
        return shlex.split(text)
    except ValueError as e:
        raise InvalidArgumentError(f"Couldn't read that command: {e}") from e


def _int(token: str, what: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise InvalidArgumentError(f"{what} must be a number, got '{token}'") from None


def parse_message(content: str, prefix: str = "!") -> BaseModel | None:
    """Parse one chat message. Returns None when it isn't a command."""
    text = content.strip()
    if not text.startswith(prefix):
        return None

    tokens = _split(text[len(prefix):])
    if not tokens:
        return None

    word, args = tokens[0].lower(), tokens[1:]
    name = COMMAND_ALIASES.get(word)
    if name is None:
        raise InvalidArgumentError(f"Unknown command '{word}'. Try {prefix}help.")

    payload: dict = {"name": name}

    if name in ("register", "unregister"):
        if args and _is_mention(args[0]):
            payload["user"] = parse_mention(args.pop(0))
        if name == "register" and args:
            payload["gamename"] = " ".join(args)

    elif name == "challenge":
        if len(args) != 1:
            raise InvalidArgumentError(f"Usage: {prefix}challenge <@user>")
        payload["user"] = parse_mention(args[0])

    elif name == "result":
        if not args:
            raise InvalidArgumentError(f"Usage: {prefix}result <won|lost|forfeit|timeout>")
        payload["result"] = " ".join(args)

    elif name == "move":
        if len(args) != 2:
            raise InvalidArgumentError(f"Usage: {prefix}move <@user> <position>")
        payload["user"] = parse_mention(args[0])
        payload["position"] = _int(args[1], "Position")

    elif name == "history":
        if args:
            payload["limit"] = _int(args[0], "Limit")

    elif name == "user_settings":
        if args and _is_mention(args[0]):
            payload["user"] = parse_mention(args.pop(0))
        if args:
            key = PLAYER_KEYS.get(args[0].lower())
            if key is None or len(args) < 2:
                raise InvalidArgumentError(f"Usage: {prefix}me [<@user>] <gamename|status|notes> <value>")
            payload[key] = " ".join(args[1:])

    elif name == "system_settings":
        if args:
            key = SETTING_KEYS.get(args[0].lower())
            if key is None or len(args) < 2:
                raise InvalidArgumentError(f"Usage: {prefix}set <mode|timeout|admin|unadmin|notes> <value>")
            value = " ".join(args[1:])
            if key == "timeout":
                payload[key] = _int(value, "Timeout")
            elif key in ("admin_add", "admin_remove"):
                payload[key] = parse_mention(value)
            elif key == "mode":
                payload[key] = value.lower()
            else:
                payload[key] = value

    return parse_command(payload)
