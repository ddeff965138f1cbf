"""
ladder/results.py - Append-only history of resolved challenges.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ResultRecord:
    """One resolved challenge. Outcome is always from the challenger's side."""

    challenger: str
    defender: str
    outcome: str
    challenged_at: datetime
    resolved_at: datetime

    def to_dict(self) -> dict:
        return {
            "challenger_id": self.challenger,
            "defender_id": self.defender,
            "result": self.outcome,
            "challenge_date": self.challenged_at.isoformat(),
            "resolve_date": self.resolved_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ResultRecord":
        return cls(
            challenger=str(data["challenger_id"]),
            defender=str(data["defender_id"]),
            outcome=data["result"],
            challenged_at=datetime.fromisoformat(data["challenge_date"]),
            resolved_at=datetime.fromisoformat(data["resolve_date"]),
        )


class ResultLog:
    """Linear log of ResultRecords, oldest first. Records are never edited."""

    def __init__(self, records: list[ResultRecord] | None = None):
        self._records: list[ResultRecord] = list(records or [])

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: ResultRecord) -> None:
        self._records.append(record)

    def all(self) -> tuple[ResultRecord, ...]:
        return tuple(self._records)

    def recent(self, limit: int | None = None) -> tuple[ResultRecord, ...]:
        """Last ``limit`` records, oldest first. None or 0 means everything."""
        if not limit:
            return tuple(self._records)
        return tuple(self._records[-limit:])
