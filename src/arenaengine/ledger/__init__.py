"""Staking ledger: append-only stake log and per-option totals."""

from arenaengine.ledger.book import StakeBook
from arenaengine.ledger.engine import StakingLedger

__all__ = ["StakeBook", "StakingLedger"]
