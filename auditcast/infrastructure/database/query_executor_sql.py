"""SQLAlchemy-backed QueryExecutor implementations: one over the pool, one over an open session."""

from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession


def _rows(result) -> List[Dict[str, Any]]:
    if not result.returns_rows:
        return []
    return [dict(row) for row in result.mappings().all()]


class EngineQueryExecutor:
    """Checks out a pooled connection per statement and commits it. Implements QueryExecutor."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def query(
        self,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        async with self._engine.begin() as conn:
            result = await conn.execute(text(sql), dict(params or {}))
            return _rows(result)


class SessionQueryExecutor:
    """
    Runs inside the caller's session or connection; the caller owns commit/rollback.
    Each statement gets its own SAVEPOINT, so a failed lookup or insert is rolled
    back alone and the outer transaction stays usable. Implements QueryExecutor.
    """

    def __init__(self, handle: Union[AsyncSession, AsyncConnection]) -> None:
        self._handle = handle

    async def query(
        self,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        async with self._handle.begin_nested():
            result = await self._handle.execute(text(sql), dict(params or {}))
            return _rows(result)
