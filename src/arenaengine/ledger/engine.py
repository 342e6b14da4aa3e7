"""Staking ledger - validates and records stakes, one StakeBook per arena."""

from __future__ import annotations

import uuid
from decimal import Decimal
from threading import Lock
from typing import Any, Callable

import structlog

from arenaengine.errors import (
    AboveMaximumStake,
    ArenaNotOpen,
    BelowMinimumStake,
    InputValidationError,
    InvalidOption,
    PredictionWindowClosed,
)
from arenaengine.ledger.book import StakeBook
from arenaengine.models.arena import Arena, ArenaStatus
from arenaengine.models.money import parse_amount
from arenaengine.models.stake import OptionTotals, Stake

log = structlog.get_logger(__name__)


def new_stake_id() -> str:
    return "stk_" + uuid.uuid4().hex[:16]


class StakingLedger:
    """Sole writer of stake totals. Concurrent record_stake calls for one arena serialize on its book."""

    def __init__(
        self,
        on_stake: Callable[[Stake], None] | None = None,
        currency_symbol: str | None = None,
    ) -> None:
        self._books: dict[str, StakeBook] = {}
        self._books_lock = Lock()
        self.on_stake = on_stake
        self.currency_symbol = currency_symbol

    def book(self, arena_id: str) -> StakeBook:
        with self._books_lock:
            book = self._books.get(arena_id)
            if book is None:
                book = self._books[arena_id] = StakeBook(arena_id)
            return book

    def load(self, arena_id: str, stakes: list[Stake]) -> StakeBook:
        """Replace an arena's book with one rebuilt from its stake log."""
        book = StakeBook.from_stakes(arena_id, stakes)
        with self._books_lock:
            self._books[arena_id] = book
        return book

    def record_stake(
        self,
        arena: Arena,
        participant_id: str,
        option: str,
        amount: Any,
        now: int,
    ) -> str:
        """Validate and append a stake. Returns the new stake id."""
        try:
            value = parse_amount(amount, symbol=self.currency_symbol)
        except ValueError as e:
            raise InputValidationError(str(e)) from e
        rules = arena.validation_rules
        book = self.book(arena.id)
        with book.lock:
            if arena.status == ArenaStatus.PENDING:
                raise ArenaNotOpen(f"arena {arena.id} has not started", arena_id=arena.id)
            window_end = arena.prediction_window_end_ts()
            if arena.status != ArenaStatus.ACTIVE or window_end is None or now >= window_end:
                raise PredictionWindowClosed(f"prediction window for arena {arena.id} is closed", arena_id=arena.id)
            if option not in arena.predictions.option_names():
                raise InvalidOption(f"{option!r} is not an option of arena {arena.id}", option=option)
            if value < rules.minimum_stake or value < Decimal(0):
                raise BelowMinimumStake(f"stake {value} below minimum {rules.minimum_stake}", amount=str(value))
            if value > rules.maximum_stake:
                raise AboveMaximumStake(f"stake {value} above maximum {rules.maximum_stake}", amount=str(value))
            stake = Stake(
                stake_id=new_stake_id(),
                arena_id=arena.id,
                participant_id=participant_id,
                option=option,
                amount=value,
                timestamp=now,
            )
            book.append(stake)
        log.info("stake_recorded", arena_id=arena.id, stake_id=stake.stake_id, option=option, amount=str(value))
        if self.on_stake is not None:
            self.on_stake(stake)
        return stake.stake_id

    def totals(self, arena_id: str) -> dict[str, OptionTotals]:
        return self.book(arena_id).totals()

    def stakes(self, arena_id: str) -> list[Stake]:
        return self.book(arena_id).stakes()

    def pool(self, arena_id: str) -> Decimal:
        return self.book(arena_id).pool()
