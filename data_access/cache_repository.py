# data_access/cache_repository.py
"""Storage backends for semantic cache entries."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

import structlog
from config import settings
from core.db_manager import Neo4jManagerSingleton
from models import CacheEntry

from .repository import BaseRepository

logger = structlog.get_logger(__name__)

__all__ = [
    "CacheRepository",
    "Neo4jCacheRepository",
    "InMemoryCacheRepository",
    "get_cache_repository",
]


class CacheRepository(Protocol):
    """Operations the similarity cache needs from its store."""

    async def fetch_entries(self, scope: str) -> list[CacheEntry]: ...

    async def fetch_by_query_text(
        self, scope: str, query_text: str
    ) -> CacheEntry | None: ...

    async def insert_entry(self, entry: CacheEntry) -> None: ...

    async def record_hit(
        self, entry_id: str, hit_count: int, used_at: datetime
    ) -> None: ...


def _record_to_entry(record: dict[str, Any]) -> CacheEntry:
    data = dict(record)
    for key in ("last_used_at", "created_at"):
        value = data.get(key)
        if value is not None and hasattr(value, "to_native"):
            data[key] = value.to_native()
    return CacheEntry.model_validate(data)


class Neo4jCacheRepository(BaseRepository):
    """Cache entries stored as nodes labelled ``settings.NEO4J_CACHE_NODE_LABEL``."""

    def __init__(self, db: Neo4jManagerSingleton | None = None) -> None:
        super().__init__(db)
        self.label = settings.NEO4J_CACHE_NODE_LABEL

    def _return_clause(self) -> str:
        return """
        RETURN c.id AS id,
               c.scope AS scope,
               c.query_text AS query_text,
               c.query_vector AS query_vector,
               c.response_text AS response_text,
               c.hit_count AS hit_count,
               c.last_used_at AS last_used_at,
               c.created_at AS created_at
        """

    async def fetch_entries(self, scope: str) -> list[CacheEntry]:
        query = f"""
        MATCH (c:{self.label} {{scope: $scope_param}})
        WHERE size(coalesce(c.query_vector, [])) > 0
        {self._return_clause()}
        """
        records = await self.read(query, {"scope_param": scope})
        entries: list[CacheEntry] = []
        for record in records:
            try:
                entries.append(_record_to_entry(record))
            except ValueError as e:
                logger.warning(
                    f"Skipping malformed cache entry '{record.get('id')}': {e}"
                )
        return entries

    async def fetch_by_query_text(
        self, scope: str, query_text: str
    ) -> CacheEntry | None:
        query = f"""
        MATCH (c:{self.label} {{scope: $scope_param, query_text: $query_text_param}})
        {self._return_clause()}
        ORDER BY c.created_at ASC
        LIMIT 1
        """
        records = await self.read(
            query, {"scope_param": scope, "query_text_param": query_text}
        )
        if not records:
            return None
        return _record_to_entry(records[0])

    async def insert_entry(self, entry: CacheEntry) -> None:
        query = f"""
        CREATE (c:{self.label} {{
            id: $id_param,
            scope: $scope_param,
            query_text: $query_text_param,
            query_vector: $query_vector_param,
            response_text: $response_text_param,
            hit_count: $hit_count_param,
            last_used_at: datetime($last_used_at_param),
            created_at: datetime($created_at_param)
        }})
        """
        parameters = {
            "id_param": entry.id,
            "scope_param": entry.scope,
            "query_text_param": entry.query_text,
            "query_vector_param": entry.query_vector,
            "response_text_param": entry.response_text,
            "hit_count_param": entry.hit_count,
            "last_used_at_param": entry.last_used_at.isoformat(),
            "created_at_param": entry.created_at.isoformat(),
        }
        await self.write(query, parameters)

    async def record_hit(self, entry_id: str, hit_count: int, used_at: datetime) -> None:
        query = f"""
        MATCH (c:{self.label} {{id: $id_param}})
        SET c.hit_count = $hit_count_param,
            c.last_used_at = datetime($used_at_param)
        """
        await self.write(
            query,
            {
                "id_param": entry_id,
                "hit_count_param": hit_count,
                "used_at_param": used_at.isoformat(),
            },
        )


class InMemoryCacheRepository:
    """Process-local cache store for development and tests."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def fetch_entries(self, scope: str) -> list[CacheEntry]:
        return [
            e.model_copy(deep=True)
            for e in self._entries.values()
            if e.scope == scope and e.query_vector
        ]

    async def fetch_by_query_text(
        self, scope: str, query_text: str
    ) -> CacheEntry | None:
        for entry in self._entries.values():
            if entry.scope == scope and entry.query_text == query_text:
                return entry.model_copy(deep=True)
        return None

    async def insert_entry(self, entry: CacheEntry) -> None:
        self._entries[entry.id] = entry.model_copy(deep=True)

    async def record_hit(self, entry_id: str, hit_count: int, used_at: datetime) -> None:
        entry = self._entries.get(entry_id)
        if entry is None:
            logger.warning(f"record_hit: cache entry '{entry_id}' not found.")
            return
        self._entries[entry_id] = entry.model_copy(
            update={"hit_count": hit_count, "last_used_at": used_at}
        )

    def get(self, entry_id: str) -> CacheEntry | None:
        return self._entries.get(entry_id)


def get_cache_repository(backend: str | None = None) -> CacheRepository:
    """Return the repository for ``backend`` (defaults to ``settings.CACHE_BACKEND``)."""
    backend = (backend or settings.CACHE_BACKEND).lower()
    if backend == "memory":
        return InMemoryCacheRepository()
    if backend == "neo4j":
        return Neo4jCacheRepository()
    raise ValueError(f"Unknown cache backend '{backend}'")
