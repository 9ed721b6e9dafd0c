# data_access/repository.py
"""Repository abstractions for Neo4j access."""

from __future__ import annotations

from typing import Any

from core.db_manager import Neo4jManagerSingleton, neo4j_manager

__all__ = ["BaseRepository"]


class BaseRepository:
    """Base repository providing simple database helpers."""

    def __init__(self, db: Neo4jManagerSingleton | None = None) -> None:
        self.db = db or neo4j_manager

    async def read(
        self, query: str, parameters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute a read query."""
        return await self.db.execute_read_query(query, parameters)

    async def write(
        self, query: str, parameters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute a write query."""
        return await self.db.execute_write_query(query, parameters)
