"""TOML settings, profile overlay and the feed catalog built from them."""

import json

import structlog

from arenaengine.config import Settings, configure_logging, get_settings
from arenaengine.oracle.catalog import FeedCatalog

DEFAULT_TOML = """
[storage]
db_path = "data/test.duckdb"

[lifecycle]
resolution_max_attempts = 3

[[oracle.feeds]]
provider = "pyth"
id = "btc-usd"
name = "BTC/USD"

[[oracle.feeds]]
provider = "switchboard"
id = "bad"
confidence = 4.0
"""

PROFILE_TOML = """
[storage]
persist = true

[lifecycle]
resolution_backoff_base_sec = 1
"""


def _config_dir(tmp_path):
    (tmp_path / "default.toml").write_text(DEFAULT_TOML)
    (tmp_path / "test.toml").write_text(PROFILE_TOML)
    return tmp_path


def test_defaults_without_profile(tmp_path):
    settings = get_settings(config_dir=_config_dir(tmp_path))
    assert settings.db_path == "data/test.duckdb"
    assert settings.persist is False
    assert settings.resolution_max_attempts == 3
    assert settings.resolution_backoff_base_sec == 5.0
    assert settings.currency_precision == 6


def test_profile_overlay_merges_tables(tmp_path):
    settings = get_settings("test", _config_dir(tmp_path))
    assert settings.persist is True
    assert settings.db_path == "data/test.duckdb"
    assert settings.resolution_max_attempts == 3
    assert settings.resolution_backoff_base_sec == 1.0


def test_missing_config_dir_gives_defaults(tmp_path):
    settings = get_settings(config_dir=tmp_path / "nope")
    assert settings.logging_level == "INFO"
    assert settings.feed_catalog == []


def test_catalog_skips_invalid_feeds(tmp_path):
    catalog = FeedCatalog.from_config(get_settings(config_dir=_config_dir(tmp_path)).feed_catalog)
    assert [f.id for f in catalog.feeds()] == ["btc-usd"]
    assert catalog.is_known("pyth", "btc-usd")
    assert not catalog.is_known("pyth", "eth-usd")
    assert catalog.is_known("switchboard", "anything")


def test_env_selects_config_dir_and_profile(tmp_path, monkeypatch):
    monkeypatch.setenv("ARENA_CONFIG_DIR", str(_config_dir(tmp_path)))
    monkeypatch.setenv("ARENA_PROFILE", "test")
    settings = get_settings()
    assert settings.profile == "test"
    assert settings.persist is True
    # explicit arguments win over the environment
    assert get_settings("none", tmp_path / "nope").persist is False


def test_json_logs_go_to_stderr_with_tracebacks(capsys):
    configure_logging(Settings.from_dict({"logging": {"format": "json", "level": "warning"}}, profile="ci"))
    try:
        logger = structlog.get_logger("arenaengine.test")
        logger.info("dropped")
        try:
            raise RuntimeError("feed down")
        except RuntimeError:
            logger.exception("poll_failed", feed_id="btc-usd")
        out, err = capsys.readouterr()
    finally:
        structlog.contextvars.clear_contextvars()
        structlog.reset_defaults()
    assert out == ""
    event = json.loads(err.strip())
    assert event["event"] == "poll_failed"
    assert event["level"] == "error"
    assert event["profile"] == "ci"
    assert "RuntimeError: feed down" in event["exception"]
