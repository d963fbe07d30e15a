"""
Metric queries against the read-only replica.
Each query reads one scalar aggregate (`total`) and maps it to a named metric.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from metrics_worker.domain.errors import EmptyResultError
from metrics_worker.domain.ports import MetricPublisher, ReadSource
from metrics_worker.domain.values import MetricValue, coerce_metric_value, metric_name

COUNT_USERS = 'SELECT COUNT(*) AS total FROM public.user'

SUM_CONTENT_DAG_SIZE = 'SELECT SUM(c.dag_size) AS "total" FROM content c'

COUNT_UPLOADS = 'SELECT COUNT(*) AS total FROM upload'

COUNT_UPLOADS_PER_TYPE = 'SELECT COUNT(*) AS total FROM upload WHERE type = $1'

COUNT_PINS = 'SELECT COUNT(*) AS total FROM pin'

COUNT_PINS_PER_STATUS = 'SELECT COUNT(*) AS total FROM pin WHERE status = $1'

COUNT_PIN_REQUESTS = 'SELECT COUNT(*) AS total FROM psa_pin_request'


class MetricQuery(Protocol):
    async def execute(self, read: ReadSource) -> list[tuple[str, MetricValue]]:
        ...


async def _fetch_total(read: ReadSource, sql: str, what: str, *params: Any, nullable: bool = False) -> Any:
    rows = await read.fetch(sql, *params)
    if not rows:
        raise EmptyResultError(what)
    total = rows[0]["total"]
    # COUNT never yields NULL; SUM does when nothing was summed
    if total is None and not nullable:
        raise EmptyResultError(what)
    return total


@dataclass(frozen=True)
class CountAll:
    base: str
    sql: str
    what: Optional[str] = None

    async def execute(self, read: ReadSource) -> list[tuple[str, MetricValue]]:
        total = await _fetch_total(read, self.sql, self.what or self.base)
        return [(metric_name(self.base), coerce_metric_value(total))]


@dataclass(frozen=True)
class CountFiltered:
    base: str
    sql: str
    category: str
    what: Optional[str] = None

    async def execute(self, read: ReadSource) -> list[tuple[str, MetricValue]]:
        what = f"{self.category} {self.what or self.base}"
        total = await _fetch_total(read, self.sql, what, self.category)
        return [(metric_name(self.base, self.category), coerce_metric_value(total))]


@dataclass(frozen=True)
class SumScalar:
    """SUM over a numeric column; NULL (no rows summed) is published as 0."""
    base: str
    sql: str
    what: Optional[str] = None

    async def execute(self, read: ReadSource) -> list[tuple[str, MetricValue]]:
        total = await _fetch_total(read, self.sql, self.what or self.base, nullable=True)
        return [(metric_name(self.base), coerce_metric_value(total))]


async def update_metric(query: MetricQuery, read: ReadSource, publisher: MetricPublisher) -> Sequence[str]:
    """Compute a query from the replica and publish its values. Returns the published names."""
    values = await query.execute(read)
    for name, value in values:
        await publisher.publish(name, value)
    return [name for name, _ in values]
