"""Oracle feed adapters, aggregation and polling."""

from arenaengine.oracle.aggregator import OracleAggregator, resolve_window
from arenaengine.oracle.base import OracleAdapter
from arenaengine.oracle.catalog import FeedCatalog
from arenaengine.oracle.router import OracleRouter, build_router

__all__ = [
    "FeedCatalog",
    "OracleAdapter",
    "OracleAggregator",
    "OracleRouter",
    "build_router",
    "resolve_window",
]
