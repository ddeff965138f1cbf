"""
ladder/challenges.py - Open challenges for one channel, and the rules around them.

Three pieces:
  1. Eligibility: who may challenge whom under each challenge mode
  2. ChallengeLedger: the set of open challenges, at most one per player
  3. Resolution rules: turning a reporter's action into an outcome that is
     always relative to the challenger

Not thread safe on its own. LadderEngine holds the channel lock around
every call.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from .errors import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
)
from .roster import Roster
from .tiers import tier_of

# ============================================================================
# Constants
# ============================================================================

MODE_LADDER = "ladder"
MODE_PYRAMID = "pyramid"
MODE_OPEN = "open"
MODES = (MODE_LADDER, MODE_PYRAMID, MODE_OPEN)

# Older channels were created with "linear", which behaves exactly like ladder
MODE_ALIASES = {"linear": MODE_LADDER}

ACTION_WON = "won"
ACTION_LOST = "lost"
ACTION_CANCEL = "cancel"
ACTION_FORFEIT = "forfeit"
ACTION_TIMED_OUT = "timed-out"
ACTIONS = (ACTION_WON, ACTION_LOST, ACTION_CANCEL, ACTION_FORFEIT, ACTION_TIMED_OUT)

# Outcomes where the challenger takes the defender's spot
CHALLENGER_PREVAILS = frozenset({ACTION_WON, ACTION_FORFEIT, ACTION_TIMED_OUT})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_mode(mode: str) -> str:
    """Canonical mode name. Raises InvalidArgumentError for unknown modes."""
    mode = MODE_ALIASES.get(mode.strip().lower(), mode.strip().lower())
    if mode not in MODES:
        raise InvalidArgumentError(
            f"Invalid challenge mode '{mode}', must be ladder, pyramid, or open"
        )
    return mode


# ============================================================================
# Data Types
# ============================================================================


@dataclass(frozen=True)
class Challenge:
    """An open match between two competitors."""

    challenger: str
    defender: str
    created_at: datetime
    deadline: datetime

    def involves(self, identity: str) -> bool:
        return identity in (self.challenger, self.defender)

    def opponent_of(self, identity: str) -> str:
        return self.defender if identity == self.challenger else self.challenger

    def to_dict(self) -> dict:
        return {
            "challenger_id": self.challenger,
            "defender_id": self.defender,
            "challenge_date": self.created_at.isoformat(),
            "challenge_deadline": self.deadline.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Challenge":
        return cls(
            challenger=str(data["challenger_id"]),
            defender=str(data["defender_id"]),
            created_at=datetime.fromisoformat(data["challenge_date"]),
            deadline=datetime.fromisoformat(data["challenge_deadline"]),
        )


# ============================================================================
# Eligibility
# ============================================================================


def check_eligibility(mode: str, challenger_position: int, defender_position: int) -> None:
    """Raise StateConflictError unless the challenger may target the defender.

    Nobody challenges downward. Beyond that:
      ladder:  only the next competitor up
      pyramid: anyone in your own tier or exactly one tier up
      open:    anyone ranked better
    """
    if challenger_position < defender_position:
        raise StateConflictError("You may only challenge players ranked above you")

    mode = normalize_mode(mode)
    if mode == MODE_LADDER:
        if challenger_position - 1 != defender_position:
            raise StateConflictError("You may only challenge the next person up")
    elif mode == MODE_PYRAMID:
        if tier_of(challenger_position) - tier_of(defender_position) > 1:
            raise StateConflictError(
                "You may only challenge players in your own tier or one tier up"
            )


# ============================================================================
# Ledger
# ============================================================================


class ChallengeLedger:
    """Open challenges for one channel, in creation order."""

    def __init__(
        self,
        roster: Roster,
        challenges: list[Challenge] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._roster = roster
        self._challenges: list[Challenge] = list(challenges or [])
        self._clock = clock

    def __len__(self) -> int:
        return len(self._challenges)

    def all(self) -> tuple[Challenge, ...]:
        return tuple(self._challenges)

    def find(self, identity: str) -> Challenge | None:
        for challenge in self._challenges:
            if challenge.involves(identity):
                return challenge
        return None

    def find_by_participant(self, identity: str) -> Challenge:
        challenge = self.find(identity)
        if challenge is None:
            raise NotFoundError(f"No active challenge found for <@{identity}>")
        return challenge

    def is_available(self, identity: str) -> bool:
        """True iff the player is active and not already in a challenge."""
        player = self._roster.find(identity)
        return player is not None and player.is_active and self.find(identity) is None

    def start(
        self, challenger: str, defender: str, mode: str, timeout: timedelta
    ) -> Challenge:
        """Validate and open a new challenge."""
        if challenger == defender:
            raise InvalidArgumentError("You can't challenge yourself")

        challenger_player = self._roster.get(challenger)
        defender_player = self._roster.get(defender)

        if not self.is_available(challenger):
            raise StateConflictError(f"<@{challenger}> is not available for a challenge")
        if not self.is_available(defender):
            raise StateConflictError(f"<@{defender}> is not available for a challenge")

        check_eligibility(mode, challenger_player.position, defender_player.position)

        now = self._clock()
        challenge = Challenge(
            challenger=challenger,
            defender=defender,
            created_at=now,
            deadline=now + timeout,
        )
        self._challenges.append(challenge)
        return challenge

    def close(self, identity: str) -> Challenge | None:
        """Remove the challenge involving ``identity``, if any. Returns it."""
        challenge = self.find(identity)
        if challenge is not None:
            self._challenges.remove(challenge)
        return challenge


# ============================================================================
# Resolution
# ============================================================================


def resolve_action(challenge: Challenge, reporter: str, action: str) -> str:
    """Translate a reporter's action into an outcome relative to the challenger.

    Either side may report won/lost; a defender's report is inverted.
    Only the challenger may cancel, only the defender may forfeit, and
    either side may report a timeout.
    """
    if action not in ACTIONS:
        raise InvalidArgumentError(
            f"Invalid action '{action}', must be one of: {', '.join(ACTIONS)}"
        )

    if reporter == challenge.challenger:
        if action == ACTION_FORFEIT:
            raise PermissionDeniedError("Challenger cannot forfeit, only cancel")
        return action

    if reporter == challenge.defender:
        if action == ACTION_CANCEL:
            raise PermissionDeniedError("Defender cannot cancel, only forfeit")
        if action == ACTION_WON:
            return ACTION_LOST
        if action == ACTION_LOST:
            return ACTION_WON
        return action

    raise PermissionDeniedError(f"<@{reporter}> is not part of this challenge")
