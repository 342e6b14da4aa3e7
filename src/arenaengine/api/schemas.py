"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from arenaengine.models import Arena, FeedInfo, ResolutionValue
from arenaengine.models.money import Amount


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"
    arenas: int = 0


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_found, below_minimum_stake")
    errors: list[str] | None = None
    warnings: list[str] | None = None


# --- Arenas ---
class ArenaCreatedResponse(BaseModel):
    arena: Arena
    warnings: list[str] = Field(default_factory=list)


class ArenasListResponse(BaseModel):
    arenas: list[Arena]
    total: int


class JoinRequest(_Request):
    participant_id: str = Field(..., min_length=1)


class CancelRequest(_Request):
    reason: str = "admin"


class DisputeRequest(_Request):
    reason: str = "dispute upheld"


# --- Stakes ---
class StakeRequest(_Request):
    participant_id: str = Field(..., min_length=1)
    option: str
    amount: Any = Field(..., description='Number or display string, e.g. 5 or "5 USDC"')


class StakeResponse(BaseModel):
    stake_id: str
    arena_id: str
    total_pool: Amount


# --- Oracle ---
class SampleAcceptedResponse(BaseModel):
    accepted: bool


class FeedsResponse(BaseModel):
    feeds: list[FeedInfo]
    by_provider: dict[str, list[str]]


class ResolutionResponse(BaseModel):
    arena_id: str
    status: str
    resolution: ResolutionValue | None = None
