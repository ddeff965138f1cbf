"""Tests for ladder.chat - chat message parsing."""

import pytest

from ladder.chat import parse_mention, parse_message
from ladder.commands import (
    ActiveChallengesCommand,
    ChallengeCommand,
    HistoryCommand,
    MoveCommand,
    RegisterCommand,
    ResultCommand,
    StandingsCommand,
    SystemSettingsCommand,
    UnregisterCommand,
    UserSettingsCommand,
)
from ladder.errors import InvalidArgumentError


class TestMentions:
    def test_plain_mention(self):
        assert parse_mention("<@123>") == "123"

    def test_nickname_mention(self):
        assert parse_mention("<@!123>") == "123"

    def test_not_a_mention(self):
        with pytest.raises(InvalidArgumentError):
            parse_mention("bob")


class TestParseMessage:
    def test_non_command_ignored(self):
        assert parse_message("good games everyone") is None

    def test_bare_prefix_ignored(self):
        assert parse_message("!") is None

    def test_unknown_command_rejected(self):
        with pytest.raises(InvalidArgumentError, match="Unknown command"):
            parse_message("!dance")

    def test_custom_prefix(self):
        assert isinstance(parse_message("?standings", prefix="?"), StandingsCommand)
        assert parse_message("!standings", prefix="?") is None

    @pytest.mark.parametrize("word", ["register", "join", "add"])
    def test_register_aliases(self, word):
        assert isinstance(parse_message(f"!{word}"), RegisterCommand)

    @pytest.mark.parametrize("word", ["unregister", "leave", "remove", "quit"])
    def test_unregister_aliases(self, word):
        assert isinstance(parse_message(f"!{word}"), UnregisterCommand)

    def test_register_other_with_name(self):
        cmd = parse_message("!register <@42> Captain Falcon")
        assert cmd.user == "42"
        assert cmd.gamename == "Captain Falcon"

    def test_challenge(self):
        cmd = parse_message("!challenge <@!77>")
        assert isinstance(cmd, ChallengeCommand)
        assert cmd.user == "77"

    def test_challenge_needs_mention(self):
        with pytest.raises(InvalidArgumentError):
            parse_message("!challenge")
        with pytest.raises(InvalidArgumentError):
            parse_message("!challenge bob")

    @pytest.mark.parametrize("text,expected", [
        ("!result w", "won"),
        ("!results lost", "lost"),
        ("!result timed out", "timed-out"),
    ])
    def test_results(self, text, expected):
        cmd = parse_message(text)
        assert isinstance(cmd, ResultCommand)
        assert cmd.result == expected

    def test_move(self):
        cmd = parse_message("!move <@5> 2")
        assert isinstance(cmd, MoveCommand)
        assert (cmd.user, cmd.position) == ("5", 2)

    def test_move_bad_position(self):
        with pytest.raises(InvalidArgumentError):
            parse_message("!move <@5> top")

    @pytest.mark.parametrize("word", ["active_challenges", "active", "challenges"])
    def test_active_aliases(self, word):
        assert isinstance(parse_message(f"!{word}"), ActiveChallengesCommand)

    def test_ladder_alias(self):
        assert isinstance(parse_message("!ladder"), StandingsCommand)

    def test_history_limit(self):
        cmd = parse_message("!history 3")
        assert isinstance(cmd, HistoryCommand)
        assert cmd.limit == 3


class TestSettingsMessages:
    def test_set_mode(self):
        cmd = parse_message("!set mode Pyramid")
        assert isinstance(cmd, SystemSettingsCommand)
        assert cmd.mode == "pyramid"

    def test_set_timeout(self):
        assert parse_message("!set timeout 3").timeout == 3

    def test_set_admin(self):
        assert parse_message("!set admin <@9>").admin_add == "9"
        assert parse_message("!set unadmin <@9>").admin_remove == "9"

    def test_set_notes_keeps_spaces(self):
        assert parse_message("!set notes Fridays at 8").notes == "Fridays at 8"

    def test_set_unknown_key(self):
        with pytest.raises(InvalidArgumentError):
            parse_message("!set color blue")

    def test_settings_query(self):
        assert parse_message("!settings").is_query

    def test_me_status(self):
        cmd = parse_message("!me status inactive")
        assert isinstance(cmd, UserSettingsCommand)
        assert cmd.status == "inactive"
        assert cmd.user is None

    def test_me_for_other_user(self):
        cmd = parse_message("!me <@3> name Sheik Main")
        assert cmd.user == "3"
        assert cmd.gamename == "Sheik Main"

    def test_unbalanced_quotes(self):
        with pytest.raises(InvalidArgumentError):
            parse_message('!set notes "oops')
