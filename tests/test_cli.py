"""Tests for ladder.cli - offline store inspection commands."""

import pytest
import yaml

from bot.db import LadderDB
from ladder.cli import main
from ladder.registry import ChannelRegistry


@pytest.fixture
def db_path(tmp_path):
    """A store with one pyramid channel holding three players."""
    path = str(tmp_path / "ladder.db")
    registry = ChannelRegistry(default_mode="pyramid")
    engine = registry.add_channel("chan", "owner")
    for player in ["A", "B", "C"]:
        engine.register(player)
    db = LadderDB(path)
    db.replace_all(registry.snapshots())
    db.close()
    return path


def _run(*argv) -> int:
    with pytest.raises(SystemExit) as exc:
        main(list(argv))
    return exc.value.code


class TestCli:
    def test_channels(self, db_path, capsys):
        assert _run("channels", "--db", db_path) == 0
        out = capsys.readouterr().out
        assert out.startswith("chan")
        assert "pyramid" in out
        assert "3 player(s)" in out

    def test_channels_empty(self, tmp_path, capsys):
        assert _run("channels", "--db", str(tmp_path / "empty.db")) == 0
        assert capsys.readouterr().out.strip() == "No channels."

    def test_standings(self, db_path, capsys):
        assert _run("standings", "chan", "--db", db_path) == 0
        out = capsys.readouterr().out
        assert "Tier 2 (2-3)" in out
        assert "3. <@C>" in out

    def test_standings_unknown_channel(self, db_path):
        assert _run("standings", "nope", "--db", db_path) == 1

    def test_export_to_file(self, db_path, tmp_path):
        out = tmp_path / "export.yaml"
        assert _run("export", "--db", db_path, "--out", str(out)) == 0
        (snap,) = yaml.safe_load(out.read_text())
        assert snap["channel_id"] == "chan"
        assert [p["player_id"] for p in snap["ranked_players"]] == ["A", "B", "C"]

    def test_config_before_subcommand(self, db_path, tmp_path, monkeypatch, capsys):
        monkeypatch.delenv("LADDERBOT_DB", raising=False)
        config = tmp_path / "config.toml"
        config.write_text(f'[store]\npath = "{db_path}"\n')
        assert _run("--config", str(config), "channels") == 0
        assert capsys.readouterr().out.startswith("chan")

    def test_missing_subcommand(self):
        assert _run() == 2
