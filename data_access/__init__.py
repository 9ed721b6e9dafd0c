# data_access/__init__.py
# This file makes the data_access directory a Python package.

from .cache_repository import (
    CacheRepository,
    InMemoryCacheRepository,
    Neo4jCacheRepository,
    get_cache_repository,
)
from .repository import BaseRepository

__all__ = [
    "BaseRepository",
    "CacheRepository",
    "InMemoryCacheRepository",
    "Neo4jCacheRepository",
    "get_cache_repository",
]
