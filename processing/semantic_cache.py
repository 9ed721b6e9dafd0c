# processing/semantic_cache.py
"""Semantic response cache.

A lookup embeds the incoming query, scans every entry stored for the same
scope and reuses the best entry when its cosine similarity reaches the
configured threshold. Every cache failure is logged and treated as a miss so
that callers always fall through to generation.
"""

from __future__ import annotations

from datetime import datetime, timezone

import numpy as np
import structlog
from config import settings
from core.llm_interface import llm_service
from data_access.cache_repository import CacheRepository, get_cache_repository
from utils.similarity import find_most_similar

from models import CacheEntry, CacheLookupResult

logger = structlog.get_logger(__name__)


class SimilarityCache:
    """Embedding-keyed cache of generated responses, partitioned by scope."""

    def __init__(
        self,
        repository: CacheRepository | None = None,
        threshold: float | None = None,
    ) -> None:
        self.repository = repository or get_cache_repository()
        self.threshold = (
            threshold if threshold is not None else settings.CACHE_SIMILARITY_THRESHOLD
        )

    async def lookup(self, scope: str, query_text: str) -> CacheLookupResult:
        """Return the best cached entry for ``query_text`` within ``scope``.

        Misses when the query cannot be embedded, the scope is empty, or the
        best similarity is below the threshold.
        """
        query_vector = await llm_service.async_get_embedding(query_text)
        if query_vector is None:
            logger.warning(
                f"Cache lookup for scope '{scope}': query embedding unavailable. Treating as miss."
            )
            return CacheLookupResult(entry=None, similarity=0.0)

        try:
            entries = await self.repository.fetch_entries(scope)
        except Exception as e:
            logger.error(
                f"Cache lookup for scope '{scope}' failed to read entries: {e}",
                exc_info=True,
            )
            return CacheLookupResult(
                entry=None, similarity=0.0, query_vector=query_vector
            )

        best_entry, best_similarity = find_most_similar(
            query_vector,
            entries,
            lambda entry: np.asarray(entry.query_vector, dtype=np.float32),
        )
        if best_entry is None or best_similarity < self.threshold:
            logger.info(
                f"Cache miss for scope '{scope}' "
                f"(candidates={len(entries)}, best similarity={best_similarity:.4f}, threshold={self.threshold})."
            )
            return CacheLookupResult(
                entry=None, similarity=best_similarity, query_vector=query_vector
            )

        entry = await self._record_hit(best_entry)
        logger.info(
            f"Cache hit for scope '{scope}': entry '{entry.id}' "
            f"(similarity={best_similarity:.4f}, hit_count={entry.hit_count})."
        )
        return CacheLookupResult(
            entry=entry, similarity=best_similarity, query_vector=query_vector
        )

    async def lookup_exact(self, scope: str, query_text: str) -> CacheLookupResult:
        """Return the entry stored under exactly ``query_text`` for ``scope``."""
        try:
            entry = await self.repository.fetch_by_query_text(scope, query_text)
        except Exception as e:
            logger.error(
                f"Exact cache lookup for '{query_text}' failed: {e}", exc_info=True
            )
            return CacheLookupResult(entry=None, similarity=0.0)

        if entry is None:
            logger.info(f"Exact cache miss for '{query_text}' in scope '{scope}'.")
            return CacheLookupResult(entry=None, similarity=0.0)

        entry = await self._record_hit(entry)
        logger.info(f"Exact cache hit for '{query_text}' in scope '{scope}'.")
        return CacheLookupResult(entry=entry, similarity=1.0)

    async def store(
        self,
        scope: str,
        query_text: str,
        query_vector: np.ndarray | None,
        response_text: str,
    ) -> CacheEntry | None:
        """Insert a new entry with ``hit_count`` 0. Returns ``None`` if skipped."""
        if query_vector is None:
            query_vector = await llm_service.async_get_embedding(query_text)
            if query_vector is None:
                logger.warning(
                    f"Cache store for scope '{scope}' skipped: query embedding unavailable."
                )
                return None

        entry = CacheEntry(
            scope=scope,
            query_text=query_text,
            query_vector=query_vector,
            response_text=response_text,
        )
        try:
            await self.repository.insert_entry(entry)
        except Exception as e:
            logger.error(
                f"Cache store for scope '{scope}' failed: {e}", exc_info=True
            )
            return None
        logger.debug(f"Stored cache entry '{entry.id}' for scope '{scope}'.")
        return entry

    async def store_exact(
        self, scope: str, query_text: str, response_text: str
    ) -> CacheEntry | None:
        """Insert an entry reachable only through :meth:`lookup_exact`.

        The entry carries no vector, so similarity lookups never return it.
        """
        entry = CacheEntry(
            scope=scope, query_text=query_text, response_text=response_text
        )
        try:
            await self.repository.insert_entry(entry)
        except Exception as e:
            logger.error(
                f"Exact cache store for '{query_text}' failed: {e}", exc_info=True
            )
            return None
        logger.debug(f"Stored exact cache entry '{entry.id}' for '{query_text}'.")
        return entry

    async def _record_hit(self, entry: CacheEntry) -> CacheEntry:
        updated = entry.model_copy(
            update={
                "hit_count": entry.hit_count + 1,
                "last_used_at": datetime.now(timezone.utc),
            }
        )
        try:
            await self.repository.record_hit(
                updated.id, updated.hit_count, updated.last_used_at
            )
        except Exception as e:
            logger.warning(
                f"Failed to record cache hit for entry '{entry.id}': {e}",
                exc_info=True,
            )
        return updated
