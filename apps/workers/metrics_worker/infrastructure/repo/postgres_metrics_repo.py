# apps/workers/metrics_worker/infrastructure/repo/postgres_metrics_repo.py
from __future__ import annotations
import asyncio
from typing import Optional

import asyncpg

from metrics_worker.domain.entities import Metric
from metrics_worker.domain.errors import WriteFailure
from metrics_worker.domain.ports import MetricPublisher
from metrics_worker.domain.values import MetricValue

# value is sent and stored as numeric, so sums beyond int64 are kept exactly
UPSERT_METRIC = """
INSERT INTO metric (name, value, updated_at)
     VALUES ($1, $2::numeric, TIMEZONE('utc', NOW()))
ON CONFLICT (name) DO UPDATE
        SET value = EXCLUDED.value, updated_at = TIMEZONE('utc', NOW())
"""

SELECT_METRIC = "SELECT name, value, updated_at FROM metric WHERE name = $1"

DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class PostgresMetricsRepo(MetricPublisher):
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def publish(self, name: str, value: MetricValue) -> None:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(UPSERT_METRIC, name, value)
        except DB_ERRORS as e:
            raise WriteFailure(name, str(e) or type(e).__name__) from e

    async def get(self, name: str) -> Optional[Metric]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(SELECT_METRIC, name)
        if row is None:
            return None
        return Metric(name=row["name"], value=row["value"], updated_at=row["updated_at"])

    async def close(self) -> None:
        await self.pool.close()
