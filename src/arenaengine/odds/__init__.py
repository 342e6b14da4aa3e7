"""Pool-implied odds."""

from arenaengine.odds.engine import OddsEngine, classify_trend, implied_value

__all__ = ["OddsEngine", "classify_trend", "implied_value"]
