"""Tests for ladder.results and ladder.reports - the result log and chat rendering."""

from datetime import datetime, timedelta, timezone

from ladder.challenges import Challenge
from ladder.engine import ChannelSettings, StandingRow
from ladder.reports import (
    render_challenges,
    render_history,
    render_settings,
    render_standings,
)
from ladder.results import ResultLog, ResultRecord

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _record(challenger="c", defender="d", outcome="won") -> ResultRecord:
    return ResultRecord(challenger, defender, outcome, NOW, NOW + timedelta(days=1))


class TestResultLog:
    def test_recent_keeps_order(self):
        log = ResultLog()
        for outcome in ["won", "lost", "forfeit"]:
            log.append(_record(outcome=outcome))
        assert [r.outcome for r in log.recent(2)] == ["lost", "forfeit"]
        assert len(log.recent(None)) == 3
        assert len(log.recent(50)) == 3

    def test_dict_round_trip(self):
        record = _record(outcome="timed-out")
        data = record.to_dict()
        assert data["result"] == "timed-out"
        assert data["resolve_date"] == (NOW + timedelta(days=1)).isoformat()
        assert ResultRecord.from_dict(data) == record


class TestRenderStandings:
    def test_empty(self):
        assert render_standings([]) == "No players registered yet."

    def test_rows(self):
        rows = [
            StandingRow(1, "a", "Ace", "active", 1, opponent="b"),
            StandingRow(2, "b", "", "inactive", 2, opponent="a"),
        ]
        assert render_standings(rows) == "1. <@a> [Ace] (vs <@b>)\n2. <@b> (vs <@a>) (inactive)"

    def test_tier_headings(self):
        rows = [StandingRow(p, f"p{p}", "", "active", t) for p, t in [(1, 1), (2, 2), (3, 2), (4, 3)]]
        lines = render_standings(rows, show_tiers=True).splitlines()
        assert lines == [
            "Tier 1 (1-1)",
            "1. <@p1>",
            "Tier 2 (2-3)",
            "2. <@p2>",
            "3. <@p3>",
            "Tier 3 (4-6)",
            "4. <@p4>",
        ]


class TestRenderOthers:
    def test_challenges(self):
        challenge = Challenge("c", "d", NOW, NOW + timedelta(days=7))
        assert render_challenges(()) == "No active challenges."
        assert render_challenges((challenge,)) == "<@c> vs <@d> (due 2024-03-08)"

    def test_history(self):
        assert render_history(()) == "No results yet."
        assert render_history((_record(),)) == "2024-03-02: <@c> won vs <@d>"

    def test_settings(self):
        settings = ChannelSettings("pyramid", timedelta(days=3), ("x",), "Fridays", 4)
        text = render_settings(settings)
        assert "Challenge mode: pyramid" in text
        assert "Challenge timeout: 3 days" in text
        assert "Admins: <@x>" in text
        assert "Notes: Fridays" in text

    def test_settings_without_admins(self):
        settings = ChannelSettings("ladder", timedelta(days=7), (), "", 0)
        assert "Admins: (everyone)" in render_settings(settings)
