# tests/test_semantic_cache.py
from datetime import datetime, timezone

import numpy as np
import pytest
from core.llm_interface import llm_service
from data_access.cache_repository import InMemoryCacheRepository
from processing.semantic_cache import SimilarityCache

from models import CacheEntry

VECTORS = {
    "what is entropy": np.array([1.0, 0.0, 0.0], dtype=np.float32),
    "define entropy": np.array([0.95, 0.1, 0.0], dtype=np.float32),
    "first law of thermodynamics": np.array([0.0, 1.0, 0.0], dtype=np.float32),
}


@pytest.fixture
def fake_embeddings(monkeypatch):
    calls: list[str] = []

    async def fake_embed(text):
        calls.append(text)
        return VECTORS.get(text)

    monkeypatch.setattr(llm_service, "async_get_embedding", fake_embed)
    return calls


@pytest.fixture
def repo():
    return InMemoryCacheRepository()


async def _seed(repo, scope, text, response, hit_count=0):
    entry = CacheEntry(
        scope=scope,
        query_text=text,
        query_vector=VECTORS[text],
        response_text=response,
        hit_count=hit_count,
    )
    await repo.insert_entry(entry)
    return entry


@pytest.mark.asyncio
async def test_empty_scope_is_miss(fake_embeddings, repo):
    cache = SimilarityCache(repo)
    result = await cache.lookup("subj-1", "what is entropy")
    assert not result.hit
    assert result.similarity == 0.0
    assert result.query_vector is not None


@pytest.mark.asyncio
async def test_similar_query_hits_and_records_use(fake_embeddings, repo):
    seeded = await _seed(repo, "subj-1", "what is entropy", "Entropy is...", hit_count=2)
    cache = SimilarityCache(repo)

    result = await cache.lookup("subj-1", "define entropy")

    assert result.hit
    assert result.entry.response_text == "Entropy is..."
    assert result.similarity >= 0.78
    stored = repo.get(seeded.id)
    assert stored.hit_count == 3
    assert stored.last_used_at >= seeded.last_used_at


@pytest.mark.asyncio
async def test_below_threshold_is_miss(fake_embeddings, repo):
    await _seed(repo, "subj-1", "first law of thermodynamics", "dU = Q - W")
    cache = SimilarityCache(repo)
    result = await cache.lookup("subj-1", "what is entropy")
    assert not result.hit
    assert result.similarity < 0.78


@pytest.mark.asyncio
async def test_scopes_are_isolated(fake_embeddings, repo):
    await _seed(repo, "subj-2", "what is entropy", "other subject")
    cache = SimilarityCache(repo)
    result = await cache.lookup("subj-1", "what is entropy")
    assert not result.hit


@pytest.mark.asyncio
async def test_threshold_is_inclusive(fake_embeddings, repo):
    await _seed(repo, "subj-1", "what is entropy", "exact")
    cache = SimilarityCache(repo, threshold=1.0)
    result = await cache.lookup("subj-1", "what is entropy")
    assert result.hit


@pytest.mark.asyncio
async def test_embedding_failure_fails_open(monkeypatch, repo):
    await _seed(repo, "subj-1", "what is entropy", "cached")

    async def failing_embed(text):
        return None

    monkeypatch.setattr(llm_service, "async_get_embedding", failing_embed)
    result = await SimilarityCache(repo).lookup("subj-1", "what is entropy")
    assert not result.hit
    assert result.query_vector is None


@pytest.mark.asyncio
async def test_repository_read_failure_is_miss(fake_embeddings):
    class BrokenRepo(InMemoryCacheRepository):
        async def fetch_entries(self, scope):
            raise ConnectionError("db down")

    result = await SimilarityCache(BrokenRepo()).lookup("subj-1", "what is entropy")
    assert not result.hit
    assert result.query_vector is not None


@pytest.mark.asyncio
async def test_record_hit_failure_still_returns_hit(fake_embeddings):
    class NoHitRepo(InMemoryCacheRepository):
        async def record_hit(self, entry_id, hit_count, used_at):
            raise ConnectionError("write failed")

    repo = NoHitRepo()
    await _seed(repo, "subj-1", "what is entropy", "cached")
    result = await SimilarityCache(repo).lookup("subj-1", "what is entropy")
    assert result.hit
    assert result.entry.response_text == "cached"


@pytest.mark.asyncio
async def test_store_reuses_lookup_vector(fake_embeddings, repo):
    cache = SimilarityCache(repo)
    entry = await cache.store("subj-1", "new question", VECTORS["what is entropy"], "answer")
    assert entry is not None
    assert entry.hit_count == 0
    assert fake_embeddings == []
    assert len(repo) == 1


@pytest.mark.asyncio
async def test_store_without_vector_embeds_once_or_skips(fake_embeddings, repo):
    cache = SimilarityCache(repo)
    assert await cache.store("subj-1", "unknown text", None, "answer") is None
    assert fake_embeddings == ["unknown text"]
    assert len(repo) == 0


@pytest.mark.asyncio
async def test_store_failure_is_swallowed(fake_embeddings):
    class BrokenRepo(InMemoryCacheRepository):
        async def insert_entry(self, entry):
            raise ConnectionError("db down")

    cache = SimilarityCache(BrokenRepo())
    assert await cache.store("s", "what is entropy", VECTORS["what is entropy"], "a") is None


@pytest.mark.asyncio
async def test_lookup_exact(fake_embeddings, repo):
    await repo.insert_entry(
        CacheEntry(
            scope="subj-1",
            query_text="QUICK_NOTES_SUBJECT_subj-1",
            query_vector=[0.1, 0.2, 0.3],
            response_text="# Notes",
            last_used_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )
    cache = SimilarityCache(repo)

    hit = await cache.lookup_exact("subj-1", "QUICK_NOTES_SUBJECT_subj-1")
    miss = await cache.lookup_exact("subj-1", "QUICK_NOTES_MODULE_m1")

    assert hit.hit and hit.entry.hit_count == 1
    assert not miss.hit
    assert fake_embeddings == []


@pytest.mark.asyncio
async def test_store_exact_is_invisible_to_similarity_lookup(fake_embeddings, repo):
    cache = SimilarityCache(repo, threshold=-1.0)
    entry = await cache.store_exact("subj-1", "QUICK_NOTES_SUBJECT_subj-1", "# Notes")

    assert entry is not None
    assert entry.query_vector == []
    assert fake_embeddings == []
    assert not (await cache.lookup("subj-1", "what is entropy")).hit
    assert (await cache.lookup_exact("subj-1", "QUICK_NOTES_SUBJECT_subj-1")).hit
