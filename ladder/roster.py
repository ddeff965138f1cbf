"""
ladder/roster.py - Ordered competitors for one channel.

Positions are 1-based and always contiguous: every mutation ends with a
renumber pass so the roster holds exactly positions 1..N.

Not thread safe on its own. LadderEngine holds the channel lock around
every call.
"""

from dataclasses import dataclass, replace

from .errors import AlreadyExistsError, InvalidArgumentError, NotFoundError

# ============================================================================
# Constants
# ============================================================================

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)

MAX_DISPLAY_NAME_LENGTH = 32
MAX_NOTES_LENGTH = 100


# ============================================================================
# Data Types
# ============================================================================


@dataclass
class Competitor:
    """A ranked participant in one channel."""

    identity: str
    display_name: str = ""
    status: str = STATUS_ACTIVE
    position: int = 0
    notes: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def to_dict(self) -> dict:
        return {
            "player_id": self.identity,
            "display_name": self.display_name,
            "status": self.status,
            "position": self.position,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Competitor":
        return cls(
            identity=str(data["player_id"]),
            display_name=data.get("display_name") or "",
            status=data.get("status") or STATUS_ACTIVE,
            position=int(data.get("position", 0)),
            notes=data.get("notes") or "",
        )


def validate_display_name(name: str) -> str:
    name = name.strip()
    if len(name) > MAX_DISPLAY_NAME_LENGTH:
        raise InvalidArgumentError(
            f"Game name must be at most {MAX_DISPLAY_NAME_LENGTH} characters"
        )
    return name


def validate_notes(notes: str) -> str:
    if len(notes) > MAX_NOTES_LENGTH:
        raise InvalidArgumentError(f"Notes must be at most {MAX_NOTES_LENGTH} characters")
    return notes


def validate_status(status: str) -> str:
    if status not in STATUSES:
        raise InvalidArgumentError(
            f"Invalid status '{status}', must be {' or '.join(STATUSES)}"
        )
    return status


# ============================================================================
# Roster
# ============================================================================


class Roster:
    """Ordered collection of competitors, best (position 1) first."""

    def __init__(self, competitors: list[Competitor] | None = None):
        self._players: list[Competitor] = list(competitors or [])
        self._renumber()

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, identity: str) -> bool:
        return self.find(identity) is not None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, identity: str) -> Competitor | None:
        for player in self._players:
            if player.identity == identity:
                return player
        return None

    def get(self, identity: str) -> Competitor:
        player = self.find(identity)
        if player is None:
            raise NotFoundError(f"Player <@{identity}> is not registered")
        return player

    def all(self) -> tuple[Competitor, ...]:
        """Read-only ordered view. Entries are copies."""
        return tuple(replace(p) for p in self._players)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, identity: str, display_name: str = "") -> int:
        """Append a new active competitor at the tail. Returns the position."""
        if self.find(identity) is not None:
            raise AlreadyExistsError(f"Player <@{identity}> is already registered")
        display_name = validate_display_name(display_name)
        position = len(self._players) + 1
        self._players.append(
            Competitor(identity=identity, display_name=display_name, position=position)
        )
        return position

    def remove(self, identity: str) -> tuple[int, str]:
        """Drop a competitor. Returns (old_position, display_name)."""
        player = self.get(identity)
        old_position = player.position
        self._players.remove(player)
        self._reindex()
        return old_position, player.display_name

    def move(self, identity: str, new_position: int) -> int:
        """Splice a competitor into ``new_position``. Returns the old position.

        Everyone between the old and new slot shifts one place toward the
        vacated slot.
        """
        player = self.get(identity)
        if not 1 <= new_position <= len(self._players):
            raise InvalidArgumentError(
                f"Position must be between 1 and {len(self._players)}, got {new_position}"
            )
        old_position = player.position
        self._players.remove(player)
        self._players.insert(new_position - 1, player)
        self._reindex()
        return old_position

    def swap_positions(self, a: str, b: str) -> None:
        first = self.get(a)
        second = self.get(b)
        first.position, second.position = second.position, first.position
        self._renumber()

    def set_status(self, identity: str, status: str) -> None:
        status = validate_status(status)
        self.get(identity).status = status

    def set_notes(self, identity: str, notes: str) -> None:
        notes = validate_notes(notes)
        self.get(identity).notes = notes

    def set_display_name(self, identity: str, display_name: str) -> None:
        display_name = validate_display_name(display_name)
        self.get(identity).display_name = display_name

    def _renumber(self) -> None:
        """Sort by current position and close any gaps."""
        self._players.sort(key=lambda p: p.position)
        self._reindex()

    def _reindex(self) -> None:
        for i, player in enumerate(self._players):
            player.position = i + 1
