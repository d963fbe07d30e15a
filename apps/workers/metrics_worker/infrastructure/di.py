# apps/workers/metrics_worker/infrastructure/di.py
from metrics_worker.domain.ports import MetricPublisher, ReadSource
from metrics_worker.infrastructure.db.pool_factory import create_pg_pool
from metrics_worker.infrastructure.repo.postgres_metrics_repo import PostgresMetricsRepo
from metrics_worker.infrastructure.repo.postgres_read_source import PgReadSource
from metrics_worker.settings import Settings


async def make_read_source(settings: Settings) -> ReadSource:
    pool = await create_pg_pool(
        settings.RO_DATABASE_URL,
        min_size=settings.PG_POOL_MIN_SIZE,
        max_size=settings.pool_max_size,
        command_timeout=settings.PG_COMMAND_TIMEOUT_S,
    )
    return PgReadSource(pool)

async def make_metrics_repo(settings: Settings) -> MetricPublisher:
    pool = await create_pg_pool(
        settings.RW_DATABASE_URL,
        min_size=settings.PG_POOL_MIN_SIZE,
        max_size=settings.pool_max_size,
        command_timeout=settings.PG_COMMAND_TIMEOUT_S,
    )
    return PostgresMetricsRepo(pool)

async def shutdown_repo(repo: ReadSource | MetricPublisher):
    await repo.close()
