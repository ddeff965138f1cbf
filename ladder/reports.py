"""
ladder/reports.py - Chat-formatted text for the read-only reports.

Players are rendered as <@id> mentions so chat clients show their names.
"""

from datetime import datetime

from .challenges import Challenge
from .engine import ChannelSettings, StandingRow
from .results import ResultRecord
from .tiers import tier_bounds


def mention(identity: str) -> str:
    return f"<@{identity}>"


def _date(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d")


def render_standings(rows: list[StandingRow], show_tiers: bool = False) -> str:
    """One line per player, best first. Pyramid channels get tier headings."""
    if not rows:
        return "No players registered yet."

    lines = []
    current_tier = 0
    for row in rows:
        if show_tiers and row.tier != current_tier:
            current_tier = row.tier
            first, last = tier_bounds(current_tier)
            lines.append(f"Tier {current_tier} ({first}-{last})")

        line = f"{row.position}. {mention(row.identity)}"
        if row.display_name:
            line += f" [{row.display_name}]"
        if row.opponent:
            line += f" (vs {mention(row.opponent)})"
        if row.status != "active":
            line += f" ({row.status})"
        lines.append(line)
    return "\n".join(lines)


def render_challenges(challenges: tuple[Challenge, ...]) -> str:
    if not challenges:
        return "No active challenges."
    return "\n".join(
        f"{mention(c.challenger)} vs {mention(c.defender)} (due {_date(c.deadline)})"
        for c in challenges
    )


def render_history(records: tuple[ResultRecord, ...]) -> str:
    if not records:
        return "No results yet."
    return "\n".join(
        f"{_date(r.resolved_at)}: {mention(r.challenger)} {r.outcome} vs {mention(r.defender)}"
        for r in records
    )


def render_settings(settings: ChannelSettings) -> str:
    admins = ", ".join(mention(a) for a in settings.admins) or "(everyone)"
    lines = [
        "Channel settings:",
        f"  Challenge mode: {settings.mode} (ladder, pyramid or open)",
        f"  Challenge timeout: {settings.timeout_days} days",
        f"  Admins: {admins}",
        f"  Players: {settings.player_count}",
    ]
    if settings.notes:
        lines.append(f"  Notes: {settings.notes}")
    return "\n".join(lines)
