"""CLI commands via typer's test runner."""

import json

import pytest
from typer.testing import CliRunner

from arenaengine.cli.app import app

from conftest import BASE_ARENA

runner = CliRunner()


@pytest.fixture(autouse=True)
def configured(monkeypatch):
    """Settings handed to logging setup, one per invocation. structlog itself stays unconfigured."""
    seen = []
    monkeypatch.setattr("arenaengine.cli.app.configure_logging", seen.append)
    return seen


def test_profile_and_config_dir_come_from_env(tmp_path, configured):
    (tmp_path / "default.toml").write_text("[currency]\nsymbol = \"USDC\"\n")
    (tmp_path / "staging.toml").write_text("[currency]\nsymbol = \"DAI\"\n")
    env = {"ARENA_CONFIG_DIR": str(tmp_path), "ARENA_PROFILE": "staging"}
    result = runner.invoke(app, ["arenas", "match-types"], env=env)
    assert result.exit_code == 0
    assert configured[0].profile == "staging"
    assert configured[0].currency_symbol == "DAI"


def test_match_types_lists_every_format(tmp_path):
    result = runner.invoke(app, ["-C", str(tmp_path), "arenas", "match-types"])
    assert result.exit_code == 0
    assert "tournament" in result.output
    assert "double_elim" in result.output


def test_validate_accepts_good_config(tmp_path):
    path = tmp_path / "arena.json"
    path.write_text(json.dumps(BASE_ARENA))
    result = runner.invoke(app, ["-C", str(tmp_path), "arenas", "validate", str(path)])
    assert result.exit_code == 0, result.output
    assert "OK: " in result.output


def test_validate_rejects_short_rounds(tmp_path):
    config = dict(BASE_ARENA, rounds={"total": 1, "current": 1, "timePerRound": 10})
    path = tmp_path / "arena.json"
    path.write_text(json.dumps(config))
    result = runner.invoke(app, ["-C", str(tmp_path), "arenas", "validate", str(path)])
    assert result.exit_code == 1
