# models/cache_models.py
"""Data models for the semantic response cache."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np
from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(BaseModel):
    """A cached generation keyed by the embedding of its original query."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    scope: str
    query_text: str
    query_vector: list[float] = Field(default_factory=list)
    response_text: str
    hit_count: int = Field(default=0, ge=0)
    last_used_at: datetime = Field(default_factory=_utcnow)
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("query_vector", mode="before")
    @classmethod
    def _coerce_vector(cls, value: object) -> object:
        if isinstance(value, np.ndarray):
            return value.astype(np.float32).tolist()
        if value is None:
            return []
        return value


@dataclass
class CacheLookupResult:
    """Outcome of a cache lookup.

    ``query_vector`` is the embedding computed during the lookup (``None`` if
    embedding failed) so that the miss path can store without re-embedding.
    """

    entry: CacheEntry | None
    similarity: float
    query_vector: np.ndarray | None = None

    @property
    def hit(self) -> bool:
        return self.entry is not None


class ChatAnswer(BaseModel):
    """Response of a cached tutoring turn."""

    text: str
    cached: bool


class NotesResult(BaseModel):
    """Response of a quick-notes request."""

    notes: str
    cached: bool
