from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import pytest

from metrics_worker.domain.errors import ReadFailure, WriteFailure
from metrics_worker.domain.ports import MetricPublisher
from metrics_worker.infrastructure.di import shutdown_repo
from metrics_worker.infrastructure.repo.postgres_metrics_repo import UPSERT_METRIC, PostgresMetricsRepo
from metrics_worker.infrastructure.repo.postgres_read_source import PgReadSource

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "infrastructure" / "db" / "schema.sql"


class FakeConn:
    """Mimics the metric table's ON CONFLICT (name) upsert."""

    def __init__(self, table, error=None):
        self.table = table
        self.error = error
        self.tick = 0

    async def execute(self, sql, *args):
        if self.error:
            raise self.error
        assert sql == UPSERT_METRIC
        name, value = args
        self.tick += 1
        self.table[name] = {"name": name, "value": value, "updated_at": datetime(2024, 1, 1, 0, 0, self.tick, tzinfo=timezone.utc)}
        return "INSERT 0 1"

    async def fetchrow(self, sql, name):
        return self.table.get(name)

    async def fetch(self, sql, *args):
        if self.error:
            raise self.error
        return [{"total": 5}]


class FakePool:
    def __init__(self, error=None):
        self.table = {}
        self.conn = FakeConn(self.table, error)
        self.closed = False

    @asynccontextmanager
    async def acquire(self):
        yield self.conn

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_publish_twice_keeps_one_row_with_latest_value():
    pool = FakePool()
    repo = PostgresMetricsRepo(pool)

    await repo.publish("uploads_total", 1)
    first = await repo.get("uploads_total")
    await repo.publish("uploads_total", 2)
    second = await repo.get("uploads_total")

    assert list(pool.table) == ["uploads_total"]
    assert second.value == 2
    assert second.updated_at > first.updated_at


@pytest.mark.asyncio
async def test_missing_metric_reads_back_none():
    assert await PostgresMetricsRepo(FakePool()).get("nope") is None


@pytest.mark.asyncio
async def test_driver_error_becomes_write_failure():
    repo = PostgresMetricsRepo(FakePool(error=ConnectionResetError("reset by peer")))

    with pytest.raises(WriteFailure, match="users_total") as exc:
        await repo.publish("users_total", 1)
    assert isinstance(exc.value.__cause__, ConnectionResetError)


@pytest.mark.asyncio
async def test_read_source_returns_plain_rows():
    rows = await PgReadSource(FakePool()).fetch("SELECT COUNT(*) AS total FROM pin")
    assert rows == [{"total": 5}]


@pytest.mark.asyncio
async def test_read_source_wraps_driver_errors():
    with pytest.raises(ReadFailure):
        await PgReadSource(FakePool(error=ConnectionRefusedError())).fetch("SELECT 1")


@pytest.mark.asyncio
async def test_close_closes_pool():
    pool = FakePool()
    await PostgresMetricsRepo(pool).close()
    assert pool.closed


@pytest.mark.asyncio
async def test_sum_beyond_int64_is_stored_exactly():
    pool = FakePool()
    repo = PostgresMetricsRepo(pool)
    huge = 2 ** 63 + 12345

    await repo.publish("content_bytes_total", huge)

    assert (await repo.get("content_bytes_total")).value == huge


@pytest.mark.asyncio
async def test_shutdown_closes_both_pools():
    ro, rw = FakePool(), FakePool()

    await shutdown_repo(PgReadSource(ro))
    await shutdown_repo(PostgresMetricsRepo(rw))

    assert ro.closed and rw.closed


def test_publisher_port_requires_read_back():
    class WriteOnly(MetricPublisher):
        async def publish(self, name, value):
            pass

    with pytest.raises(TypeError):
        WriteOnly()


def test_schema_stores_values_as_numeric():
    schema = SCHEMA_PATH.read_text()
    assert "value       NUMERIC NOT NULL" in schema
