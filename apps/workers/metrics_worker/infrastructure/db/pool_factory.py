# apps/workers/metrics_worker/infrastructure/db/pool_factory.py
from typing import Optional

import asyncpg


async def create_pg_pool(
        dsn: str | None,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: Optional[float] = None,
) -> asyncpg.Pool:
    if dsn is None:
        raise RuntimeError("DSN is missing in environment variables")
    return await asyncpg.create_pool(
        dsn=dsn,
        min_size=min(min_size, max_size),
        max_size=max_size,
        command_timeout=command_timeout,
        statement_cache_size=0,
    )
