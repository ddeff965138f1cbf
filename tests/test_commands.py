"""Tests for ladder.commands - typed commands and the dispatcher."""

import pytest
import yaml

from ladder.commands import (
    ChallengeCommand,
    CommandDispatcher,
    HistoryCommand,
    ResultCommand,
    SystemSettingsCommand,
    parse_command,
)
from ladder.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
)
from ladder.registry import ChannelRegistry


@pytest.fixture
def registry():
    return ChannelRegistry()


@pytest.fixture
def dispatcher(registry):
    return CommandDispatcher(registry)


def run(dispatcher, caller, **payload):
    return dispatcher.dispatch("chan", caller, parse_command(payload))


@pytest.fixture
def ladder(dispatcher):
    """Channel owned by 'admin' with players A, B, C."""
    run(dispatcher, "admin", name="init")
    for player in ["A", "B", "C"]:
        run(dispatcher, player, name="register")
    return dispatcher


# ======================================================================
# Parsing
# ======================================================================


class TestParseCommand:
    def test_discriminates_on_name(self):
        cmd = parse_command({"name": "challenge", "user": "42"})
        assert isinstance(cmd, ChallengeCommand)
        assert cmd.user == "42"

    @pytest.mark.parametrize(
        "raw,expected",
        [("w", "won"), ("Win", "won"), ("l", "lost"), ("loss", "lost"),
         ("f", "forfeit"), ("timeout", "timed-out"), ("timed out", "timed-out")],
    )
    def test_result_aliases(self, raw, expected):
        cmd = parse_command({"name": "result", "result": raw})
        assert isinstance(cmd, ResultCommand)
        assert cmd.result == expected

    def test_unknown_result_rejected(self):
        with pytest.raises(InvalidArgumentError):
            parse_command({"name": "result", "result": "draw"})

    def test_unknown_command_rejected(self):
        with pytest.raises(InvalidArgumentError):
            parse_command({"name": "dance"})

    def test_missing_field_rejected(self):
        with pytest.raises(InvalidArgumentError, match="user"):
            parse_command({"name": "challenge"})

    def test_move_position_must_be_positive(self):
        with pytest.raises(InvalidArgumentError):
            parse_command({"name": "move", "user": "A", "position": 0})

    def test_history_default_limit(self):
        cmd = parse_command({"name": "history"})
        assert isinstance(cmd, HistoryCommand)
        assert cmd.limit == 10

    def test_settings_mode_alias(self):
        cmd = parse_command({"name": "system_settings", "mode": "linear"})
        assert isinstance(cmd, SystemSettingsCommand)
        assert cmd.mode == "ladder"

    def test_settings_bad_mode(self):
        with pytest.raises(InvalidArgumentError):
            parse_command({"name": "system_settings", "mode": "swiss"})

    def test_settings_without_options_is_query(self):
        assert parse_command({"name": "system_settings"}).is_query

    def test_bad_status_rejected(self):
        with pytest.raises(InvalidArgumentError):
            parse_command({"name": "user_settings", "status": "asleep"})


# ======================================================================
# Channel lifecycle
# ======================================================================


class TestLifecycle:
    def test_help_works_without_channel(self, dispatcher):
        reply = run(dispatcher, "anyone", name="help")
        assert "challenge" in reply.content
        assert not reply.mutated

    def test_init(self, dispatcher, registry):
        reply = run(dispatcher, "owner", name="init")
        assert reply.mutated
        assert registry.get("chan").settings().admins == ("owner",)

    def test_init_twice_rejected(self, ladder):
        with pytest.raises(AlreadyExistsError):
            run(ladder, "A", name="init")

    def test_commands_need_channel(self, dispatcher):
        with pytest.raises(NotFoundError):
            run(dispatcher, "A", name="register")
        with pytest.raises(NotFoundError):
            run(dispatcher, "A", name="standings")

    def test_delete_needs_admin(self, ladder, registry):
        with pytest.raises(PermissionDeniedError):
            run(ladder, "A", name="delete_tournament")
        run(ladder, "admin", name="delete_tournament")
        assert "chan" not in registry


# ======================================================================
# Play
# ======================================================================


class TestPlay:
    def test_register_reply(self, ladder):
        reply = run(ladder, "D", name="register", gamename="Dee")
        assert reply.content == "Registered! You are at position 4."
        assert reply.mutated

    def test_admin_registers_other(self, ladder):
        reply = run(ladder, "admin", name="register", user="E")
        assert reply.content == "Registered <@E> at position 4!"

    def test_player_cannot_register_other(self, ladder):
        with pytest.raises(PermissionDeniedError):
            run(ladder, "A", name="register", user="E")

    def test_challenge_and_result(self, ladder, registry):
        reply = run(ladder, "B", name="challenge", user="A")
        assert reply.content.startswith("Challenge started! <@B> vs <@A>")
        reply = run(ladder, "A", name="result", result="l")
        assert "advanced from position 2 to position 1" in reply.content
        order = [row.identity for row in registry.get("chan").standings()]
        assert order == ["B", "A", "C"]

    def test_cancel(self, ladder):
        run(ladder, "B", name="challenge", user="A")
        reply = run(ladder, "B", name="cancel")
        assert "cancelled" in reply.content

    def test_forfeit(self, ladder):
        run(ladder, "B", name="challenge", user="A")
        reply = run(ladder, "A", name="forfeit")
        assert "forfeited" in reply.content

    def test_challenger_cannot_forfeit(self, ladder):
        run(ladder, "B", name="challenge", user="A")
        with pytest.raises(PermissionDeniedError):
            run(ladder, "B", name="forfeit")

    def test_ineligible_challenge(self, ladder):
        with pytest.raises(StateConflictError):
            run(ladder, "C", name="challenge", user="A")

    def test_move_by_admin(self, ladder):
        reply = run(ladder, "admin", name="move", user="C", position=1)
        assert reply.content == "Moved <@C> from position 3 to position 1."

    def test_unregister(self, ladder, registry):
        run(ladder, "A", name="unregister")
        assert [row.identity for row in registry.get("chan").standings()] == ["B", "C"]

    def test_user_settings_update_and_show(self, ladder):
        run(ladder, "A", name="user_settings", gamename="Ace", notes="evenings")
        reply = run(ladder, "A", name="user_settings")
        assert not reply.mutated
        assert "Ace" in reply.content
        assert "evenings" in reply.content


# ======================================================================
# Reports and settings
# ======================================================================


class TestReports:
    def test_standings_quiet(self, ladder):
        reply = run(ladder, "A", name="standings")
        assert reply.quiet
        assert reply.content.splitlines()[0] == "1. <@A>"

    def test_pyramid_standings_show_tiers(self, ladder):
        run(ladder, "admin", name="system_settings", mode="pyramid")
        reply = run(ladder, "A", name="standings")
        assert "Tier 2 (2-3)" in reply.content

    def test_active_challenges(self, ladder):
        assert run(ladder, "A", name="active_challenges").content == "No active challenges."
        run(ladder, "B", name="challenge", user="A")
        reply = run(ladder, "A", name="active_challenges")
        assert reply.content.startswith("<@B> vs <@A> (due ")
        assert reply.quiet

    def test_history(self, ladder):
        assert run(ladder, "A", name="history").content == "No results yet."
        run(ladder, "B", name="challenge", user="A")
        run(ladder, "B", name="result", result="won")
        assert "<@B> won vs <@A>" in run(ladder, "A", name="history").content

    def test_settings_query(self, ladder):
        reply = run(ladder, "A", name="system_settings")
        assert "Challenge mode: ladder" in reply.content
        assert not reply.mutated

    def test_settings_change_needs_admin(self, ladder):
        with pytest.raises(PermissionDeniedError):
            run(ladder, "A", name="system_settings", timeout=3)

    def test_settings_change(self, ladder):
        reply = run(ladder, "admin", name="system_settings", timeout=3, admin_add="A")
        assert reply.mutated
        assert reply.content == "Challenge timeout set to 3 days.\n<@A> added to admins."

    def test_printraw_is_yaml_snapshot(self, ladder, registry):
        reply = run(ladder, "A", name="printraw")
        assert yaml.safe_load(reply.content) == registry.get("chan").snapshot()
