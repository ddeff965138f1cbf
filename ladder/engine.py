"""
ladder/engine.py - Per-channel ladder state machine.

LadderEngine composes a Roster, a ChallengeLedger and a ResultLog and is the
only way to touch them. Every public method takes the channel lock for its
whole duration, validates fully, then mutates; a raised LadderError means
nothing changed.

Persistence is the caller's job: take snapshot() after a successful
mutation, outside of any engine call.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable

from .challenges import (
    ACTION_CANCEL,
    ACTION_FORFEIT,
    ACTION_TIMED_OUT,
    CHALLENGER_PREVAILS,
    MODE_LADDER,
    Challenge,
    ChallengeLedger,
    normalize_mode,
    resolve_action,
    utcnow,
)
from .errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    LastAdminError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
)
from .results import ResultLog, ResultRecord
from .roster import (
    Competitor,
    Roster,
    validate_display_name,
    validate_notes,
    validate_status,
)
from .tiers import tier_of

logger = logging.getLogger(__name__)

# ============================================================================
# Constants
# ============================================================================

DEFAULT_MODE = MODE_LADDER
DEFAULT_TIMEOUT = timedelta(days=7)
MAX_CHANNEL_NOTES_LENGTH = 500


# ============================================================================
# Report Types
# ============================================================================


@dataclass(frozen=True)
class StandingRow:
    """One line of the standings table."""

    position: int
    identity: str
    display_name: str
    status: str
    tier: int
    opponent: str | None = None
    notes: str = ""


@dataclass(frozen=True)
class ChannelSettings:
    mode: str
    timeout: timedelta
    admins: tuple[str, ...]
    notes: str
    player_count: int

    @property
    def timeout_days(self) -> int:
        return self.timeout.days


# ============================================================================
# Engine
# ============================================================================


class LadderEngine:
    """All ladder state and rules for one channel."""

    def __init__(
        self,
        channel_id: str,
        mode: str = DEFAULT_MODE,
        timeout: timedelta = DEFAULT_TIMEOUT,
        admins: list[str] | None = None,
        notes: str = "",
        competitors: list[Competitor] | None = None,
        challenges: list[Challenge] | None = None,
        results: list[ResultRecord] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.channel_id = channel_id
        self._mode = normalize_mode(mode)
        self._timeout = timeout
        self._admins: list[str] = list(dict.fromkeys(admins or []))
        self._notes = notes
        self._clock = clock
        self._roster = Roster(competitors)
        self._ledger = ChallengeLedger(self._roster, challenges, clock=clock)
        self._log = ResultLog(results)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def is_admin(self, caller: str) -> bool:
        """Empty admin list means everyone is an admin."""
        with self._lock:
            return self._is_admin(caller)

    def _is_admin(self, caller: str) -> bool:
        return not self._admins or caller in self._admins

    def _require_admin(self, caller: str, what: str) -> None:
        if not self._is_admin(caller):
            raise PermissionDeniedError(f"You must be an admin to {what}.")

    def _require_self_or_admin(self, caller: str, identity: str, what: str) -> None:
        if identity != caller:
            self._require_admin(caller, what)

    # ------------------------------------------------------------------
    # Roster operations
    # ------------------------------------------------------------------

    def register(self, caller: str, identity: str | None = None, display_name: str = "") -> int:
        """Add a player at the bottom of the ladder. Returns their position."""
        identity = identity or caller
        with self._lock:
            self._require_self_or_admin(caller, identity, "register other users")
            position = self._roster.add(identity, display_name)
        logger.info(f"[{self.channel_id}] registered {identity} at position {position}")
        return position

    def unregister(self, caller: str, identity: str | None = None) -> tuple[int, str]:
        """Remove a player, dropping any open challenge they are in.

        Returns (old_position, display_name).
        """
        identity = identity or caller
        with self._lock:
            self._require_self_or_admin(caller, identity, "unregister other users")
            old_position, display_name = self._roster.remove(identity)
            dropped = self._ledger.close(identity)
        if dropped is not None:
            logger.info(
                f"[{self.channel_id}] dropped challenge "
                f"{dropped.challenger} vs {dropped.defender} (player left)"
            )
        logger.info(f"[{self.channel_id}] unregistered {identity} from position {old_position}")
        return old_position, display_name

    def move(self, caller: str, identity: str, position: int) -> int:
        """Admin only: splice a player into a new position. Returns the old one."""
        with self._lock:
            self._require_admin(caller, "move players")
            self._roster.get(identity)
            if self._ledger.find(identity) is not None:
                raise StateConflictError(f"<@{identity}> is in a challenge and can't be moved")
            old_position = self._roster.move(identity, position)
        logger.info(f"[{self.channel_id}] moved {identity} from {old_position} to {position}")
        return old_position

    def update_player(
        self,
        caller: str,
        identity: str | None = None,
        display_name: str | None = None,
        status: str | None = None,
        notes: str | None = None,
    ) -> None:
        """Change any of a player's game name, status and notes in one step."""
        identity = identity or caller
        with self._lock:
            self._require_self_or_admin(caller, identity, "change other users")
            self._roster.get(identity)
            if display_name is not None:
                display_name = validate_display_name(display_name)
            if status is not None:
                status = validate_status(status)
            if notes is not None:
                notes = validate_notes(notes)

            if display_name is not None:
                self._roster.set_display_name(identity, display_name)
            if status is not None:
                self._roster.set_status(identity, status)
            if notes is not None:
                self._roster.set_notes(identity, notes)
        logger.info(f"[{self.channel_id}] updated player {identity}")

    def set_status(self, caller: str, identity: str, status: str) -> None:
        self.update_player(caller, identity, status=status)

    def set_player_notes(self, caller: str, identity: str, notes: str) -> None:
        self.update_player(caller, identity, notes=notes)

    def set_display_name(self, caller: str, identity: str, display_name: str) -> None:
        self.update_player(caller, identity, display_name=display_name)

    # ------------------------------------------------------------------
    # Challenges
    # ------------------------------------------------------------------

    def start_challenge(self, challenger: str, defender: str) -> Challenge:
        with self._lock:
            challenge = self._ledger.start(challenger, defender, self._mode, self._timeout)
        logger.info(
            f"[{self.channel_id}] challenge {challenger} -> {defender} "
            f"(deadline {challenge.deadline.isoformat()})"
        )
        return challenge

    def resolve(self, reporter: str, action: str) -> str:
        """Close the reporter's open challenge. Returns a message describing the outcome.

        The challenge is removed on every successful path, so a second report
        for the same challenge raises NotFoundError.
        """
        with self._lock:
            challenge = self._ledger.find_by_participant(reporter)
            outcome = resolve_action(challenge, reporter, action)
            old_position = self._roster.get(challenge.challenger).position

            if outcome != ACTION_CANCEL:
                self._log.append(
                    ResultRecord(
                        challenger=challenge.challenger,
                        defender=challenge.defender,
                        outcome=outcome,
                        challenged_at=challenge.created_at,
                        resolved_at=self._clock(),
                    )
                )

            if outcome in CHALLENGER_PREVAILS:
                self._roster.swap_positions(challenge.challenger, challenge.defender)

            self._ledger.close(reporter)
            challenger_position = self._roster.get(challenge.challenger).position
            defender_position = self._roster.get(challenge.defender).position

        logger.info(
            f"[{self.channel_id}] resolved {challenge.challenger} vs {challenge.defender}: "
            f"{outcome} (reported {action} by {reporter})"
        )
        return _describe_outcome(
            challenge, outcome, old_position, challenger_position, defender_position
        )

    # ------------------------------------------------------------------
    # Channel settings (admin only)
    # ------------------------------------------------------------------

    def configure(
        self,
        caller: str,
        mode: str | None = None,
        timeout_days: int | None = None,
        admin_add: str | None = None,
        admin_remove: str | None = None,
        notes: str | None = None,
    ) -> list[str]:
        """Apply any combination of channel settings atomically.

        Returns a human-readable line per change.
        """
        with self._lock:
            self._require_admin(caller, "change channel settings")

            if mode is not None:
                mode = normalize_mode(mode)
            if timeout_days is not None and timeout_days < 1:
                raise InvalidArgumentError("Challenge timeout must be at least 1 day")
            if notes is not None and len(notes) > MAX_CHANNEL_NOTES_LENGTH:
                raise InvalidArgumentError(
                    f"Channel notes must be at most {MAX_CHANNEL_NOTES_LENGTH} characters"
                )

            admins = list(self._admins)
            if admin_add is not None:
                if admin_add in admins:
                    raise AlreadyExistsError(f"<@{admin_add}> is already an admin")
                admins.append(admin_add)
            if admin_remove is not None:
                if admin_remove not in admins:
                    raise NotFoundError(f"<@{admin_remove}> is not an admin")
                if len(admins) == 1:
                    raise LastAdminError("Can't remove the last admin")
                admins.remove(admin_remove)

            changes = []
            if mode is not None:
                self._mode = mode
                changes.append(f"Challenge mode set to {mode}.")
            if timeout_days is not None:
                self._timeout = timedelta(days=timeout_days)
                changes.append(f"Challenge timeout set to {timeout_days} days.")
            if admin_add is not None:
                changes.append(f"<@{admin_add}> added to admins.")
            if admin_remove is not None:
                changes.append(f"<@{admin_remove}> removed from admins.")
            self._admins = admins
            if notes is not None:
                self._notes = notes
                changes.append("Channel notes updated.")

        for change in changes:
            logger.info(f"[{self.channel_id}] {change}")
        return changes

    def set_mode(self, caller: str, mode: str) -> str:
        self.configure(caller, mode=mode)
        return normalize_mode(mode)

    def set_timeout(self, caller: str, days: int) -> timedelta:
        self.configure(caller, timeout_days=days)
        return timedelta(days=days)

    def add_admin(self, caller: str, identity: str) -> None:
        self.configure(caller, admin_add=identity)

    def remove_admin(self, caller: str, identity: str) -> None:
        self.configure(caller, admin_remove=identity)

    def set_notes(self, caller: str, notes: str) -> None:
        self.configure(caller, notes=notes)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def standings(self) -> list[StandingRow]:
        with self._lock:
            rows = []
            for player in self._roster.all():
                challenge = self._ledger.find(player.identity)
                rows.append(
                    StandingRow(
                        position=player.position,
                        identity=player.identity,
                        display_name=player.display_name,
                        status=player.status,
                        tier=tier_of(player.position),
                        opponent=challenge.opponent_of(player.identity) if challenge else None,
                        notes=player.notes,
                    )
                )
            return rows

    def active_challenges(self) -> tuple[Challenge, ...]:
        with self._lock:
            return self._ledger.all()

    def history(self, limit: int | None = 10) -> tuple[ResultRecord, ...]:
        with self._lock:
            return self._log.recent(limit)

    def settings(self) -> ChannelSettings:
        with self._lock:
            return ChannelSettings(
                mode=self._mode,
                timeout=self._timeout,
                admins=tuple(self._admins),
                notes=self._notes,
                player_count=len(self._roster),
            )

    def competitor(self, identity: str) -> Competitor:
        with self._lock:
            return replace(self._roster.get(identity))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        """Plain-data copy of the channel, safe to serialize. Excludes the lock."""
        with self._lock:
            return {
                "channel_id": self.channel_id,
                "challenge_mode": self._mode,
                "challenge_timeout": int(self._timeout.total_seconds()),
                "ranked_players": [p.to_dict() for p in self._roster.all()],
                "active_challenges": [c.to_dict() for c in self._ledger.all()],
                "result_history": [r.to_dict() for r in self._log.all()],
                "admins": list(self._admins),
                "notes": self._notes,
            }

    @classmethod
    def from_snapshot(cls, data: dict, clock: Callable[[], datetime] = utcnow) -> "LadderEngine":
        """Rebuild an engine from snapshot().

        Repeated player ids keep their first entry. Challenges naming unknown
        or double-booked players are dropped.
        """
        channel_id = str(data["channel_id"])
        competitors = []
        known: set[str] = set()
        for raw in data.get("ranked_players") or []:
            competitor = Competitor.from_dict(raw)
            if competitor.identity in known:
                logger.warning(f"[{channel_id}] dropping duplicate player {competitor.identity}")
                continue
            known.add(competitor.identity)
            competitors.append(competitor)

        challenges = []
        busy: set[str] = set()
        for raw in data.get("active_challenges") or []:
            challenge = Challenge.from_dict(raw)
            names = {challenge.challenger, challenge.defender}
            if not names <= known or names & busy:
                logger.warning(
                    f"[{channel_id}] dropping inconsistent challenge "
                    f"{challenge.challenger} vs {challenge.defender}"
                )
                continue
            busy |= names
            challenges.append(challenge)

        timeout = data.get("challenge_timeout")
        return cls(
            channel_id=channel_id,
            mode=data.get("challenge_mode") or DEFAULT_MODE,
            timeout=timedelta(seconds=timeout) if timeout else DEFAULT_TIMEOUT,
            admins=[str(a) for a in data.get("admins") or []],
            notes=data.get("notes") or "",
            competitors=competitors,
            challenges=challenges,
            results=[ResultRecord.from_dict(r) for r in data.get("result_history") or []],
            clock=clock,
        )


def _describe_outcome(
    challenge: Challenge,
    outcome: str,
    old_position: int,
    challenger_position: int,
    defender_position: int,
) -> str:
    challenger = f"<@{challenge.challenger}>"
    defender = f"<@{challenge.defender}>"

    if outcome == ACTION_CANCEL:
        return f"Challenge between {challenger} and {defender} cancelled."

    if outcome in CHALLENGER_PREVAILS:
        if outcome == ACTION_FORFEIT:
            lead = f"{defender} forfeited. Congratulations, "
        elif outcome == ACTION_TIMED_OUT:
            lead = "The challenge timed out. Congratulations, "
        else:
            lead = "Congratulations, "
        return (
            f"{lead}{challenger} has advanced from position {old_position} "
            f"to position {challenger_position}! {defender} is now at position "
            f"{defender_position}."
        )

    return (
        f"Sorry, {challenger}, better luck next time! {defender} holds "
        f"position {defender_position}."
    )
