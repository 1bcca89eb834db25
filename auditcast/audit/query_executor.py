"""Narrow query capability shared by connection pools and open transactions."""

from typing import Any, Dict, List, Mapping, Optional, Protocol


class QueryExecutor(Protocol):
    """Run one SQL statement with named parameters and return its rows as dicts."""

    async def query(
        self,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Statements without a result set return an empty list."""
        ...
