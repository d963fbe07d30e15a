# apps/workers/metrics_worker/infrastructure/repo/postgres_read_source.py
from __future__ import annotations
from typing import Any, Mapping, Sequence

import asyncpg

from metrics_worker.domain.errors import ReadFailure
from metrics_worker.infrastructure.repo.postgres_metrics_repo import DB_ERRORS


class PgReadSource:
    """Read-only view over the replica pool. Rows come back as plain dicts."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def fetch(self, sql: str, *params: Any) -> Sequence[Mapping[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(sql, *params)
        except DB_ERRORS as e:
            raise ReadFailure(f"read query failed: {str(e) or type(e).__name__}") from e
        return [dict(r) for r in rows]

    async def close(self) -> None:
        await self.pool.close()
