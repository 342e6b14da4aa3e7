"""FeedSample, ResolutionValue, FeedInfo - oracle observations and their aggregate."""

from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict, Field

from arenaengine.models.arena import OracleProvider


class FeedSample(BaseModel):
    """One observation from a provider. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    provider: OracleProvider
    feed_id: str
    value: float = Field(..., allow_inf_nan=False)
    confidence: float = Field(..., ge=0, le=1)
    timestamp: int = Field(..., description="Provider clock, ms epoch")


class ResolutionValue(BaseModel):
    """Authoritative value an arena resolves against."""

    model_config = ConfigDict(frozen=True)

    arena_id: str
    provider: OracleProvider
    feed_id: str
    value: float = Field(..., allow_inf_nan=False)
    confidence: float = Field(..., ge=0, le=1)
    sample_count: int
    timestamp: int

    def digest(self) -> str:
        raw = f"{self.arena_id}|{self.provider}|{self.feed_id}|{self.value!r}|{self.confidence!r}|{self.timestamp}"
        return hashlib.sha256(raw.encode()).hexdigest()


class FeedInfo(BaseModel):
    """Catalog entry for a feed a provider is known to serve."""

    provider: OracleProvider
    id: str
    name: str = ""
    description: str = ""
    update_frequency: int = 60
    confidence: float = Field(0.95, ge=0, le=1)
