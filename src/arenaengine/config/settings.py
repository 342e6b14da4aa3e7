"""Settings for the arena engine: default.toml, an optional profile overlay, ARENA_* env overrides."""

from __future__ import annotations

import logging
import os
import sys
import tomllib
from pathlib import Path
from typing import Any

import structlog

ENV_CONFIG_DIR = "ARENA_CONFIG_DIR"
ENV_PROFILE = "ARENA_PROFILE"

# config/ at the checkout root
_CHECKOUT_CONFIG = Path(__file__).resolve().parents[3] / "config"


def _read_table(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    return tomllib.loads(path.read_text(encoding="utf-8"))


def _overlay(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Tables merge key by key, anything else in `override` replaces the base value."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _overlay(current, value)
        else:
            merged[key] = value
    return merged


def resolve_config_dir(config_dir: Path | None = None) -> Path:
    """--config-dir, then $ARENA_CONFIG_DIR, then ./config, then the checkout's config/."""
    if config_dir is not None:
        return Path(config_dir)
    from_env = os.environ.get(ENV_CONFIG_DIR)
    if from_env:
        return Path(from_env)
    local = Path.cwd() / "config"
    return local if local.is_dir() else _CHECKOUT_CONFIG


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Merged config. No default.toml means no config at all; a missing profile file is ignored."""
    directory = resolve_config_dir(config_dir)
    raw = _read_table(directory / "default.toml")
    if raw and profile:
        raw = _overlay(raw, _read_table(directory / f"{profile}.toml"))
    return raw


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    profile = profile or os.environ.get(ENV_PROFILE) or None
    return Settings.from_dict(load_config(profile, config_dir), profile=profile)


class Settings:
    """Config tables as loaded, with typed accessors. Missing keys fall back to built-in defaults."""

    TABLES = ("oracle", "odds", "lifecycle", "currency", "storage", "logging")

    def __init__(
        self,
        *,
        oracle: dict[str, Any] | None = None,
        odds: dict[str, Any] | None = None,
        lifecycle: dict[str, Any] | None = None,
        currency: dict[str, Any] | None = None,
        storage: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
        profile: str | None = None,
    ):
        self.profile = profile
        self.oracle = oracle or {}
        self.odds = odds or {}
        self.lifecycle = lifecycle or {}
        self.currency = currency or {}
        self.storage = storage or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any], profile: str | None = None) -> Settings:
        return cls(profile=profile, **{table: raw.get(table) for table in cls.TABLES})

    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/arena.duckdb")

    @property
    def persist(self) -> bool:
        return bool(self.storage.get("persist", False))

    @property
    def oracle_request_timeout_sec(self) -> float:
        return float(self.oracle.get("request_timeout_sec", 5.0))

    @property
    def oracle_rate_limit_per_sec(self) -> float:
        return float(self.oracle.get("rate_limit_per_sec", 5.0))

    @property
    def oracle_backoff_max_sec(self) -> float:
        return float(self.oracle.get("backoff_max_sec", 60.0))

    @property
    def pyth_base_url(self) -> str:
        return self.oracle.get("pyth_base_url", "https://hermes.pyth.network")

    @property
    def chainlink_base_url(self) -> str:
        return self.oracle.get("chainlink_base_url", "http://localhost:8081")

    @property
    def chainlink_default_confidence(self) -> float:
        return float(self.oracle.get("chainlink_default_confidence", 0.99))

    @property
    def switchboard_base_url(self) -> str:
        return self.oracle.get("switchboard_base_url", "https://crossbar.switchboard.xyz")

    @property
    def feed_catalog(self) -> list[dict[str, Any]]:
        return list(self.oracle.get("feeds") or [])

    @property
    def odds_update_interval_sec(self) -> float:
        return float(self.odds.get("update_interval_sec", 5.0))

    @property
    def odds_lookback_sec(self) -> float:
        return float(self.odds.get("lookback_sec", 300.0))

    @property
    def odds_flat_epsilon_pct(self) -> float:
        return float(self.odds.get("flat_epsilon_pct", 0.1))

    @property
    def tick_interval_sec(self) -> float:
        return float(self.lifecycle.get("tick_interval_sec", 1.0))

    @property
    def resolution_max_attempts(self) -> int:
        return int(self.lifecycle.get("resolution_max_attempts", 5))

    @property
    def resolution_backoff_base_sec(self) -> float:
        return float(self.lifecycle.get("resolution_backoff_base_sec", 5.0))

    @property
    def resolution_backoff_max_sec(self) -> float:
        return float(self.lifecycle.get("resolution_backoff_max_sec", 300.0))

    @property
    def registration_timeout_sec(self) -> int:
        return int(self.lifecycle.get("registration_timeout_sec", 86400))

    @property
    def currency_precision(self) -> int:
        return int(self.currency.get("precision", 6))

    @property
    def currency_symbol(self) -> str:
        return self.currency.get("symbol", "USDC")

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog once at entry. Logs go to stderr so stdout stays command output."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.logging_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer(sort_keys=True)]
    else:
        processors += [structlog.processors.StackInfoRenderer(), structlog.dev.ConsoleRenderer()]
    if settings.profile:
        structlog.contextvars.bind_contextvars(profile=settings.profile)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
