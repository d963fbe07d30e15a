"""
Metrics Collection Job
- Calculates metrics from the read-only replica and upserts their current values on the primary.
- Fans out one task per metric (plus one per upload type / pin status) under a concurrency cap.
- Every failure is logged; the first one (by submission order) is raised once all tasks settle.
"""
# update_metrics.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from logging import Logger, getLogger
from typing import Optional, Sequence

from metrics_worker.application import queries as q
from metrics_worker.application.queries import MetricQuery, update_metric
from metrics_worker.application.runner import check_concurrency_limit, run_bounded
from metrics_worker.application.timing import TimedTask
from metrics_worker.domain.entities import Outcome, Rejected
from metrics_worker.domain.ports import MetricPublisher, ReadSource

logger = getLogger("metrics:updateMetrics")


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskFailure:
    index: int
    label: str
    error: BaseException


@dataclass
class JobResult:
    outcomes: list[Outcome]
    failures: list[TaskFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def first_error(self) -> Optional[BaseException]:
        return self.failures[0].error if self.failures else None


def build_queries(
        upload_types: Sequence[str] = (),
        pin_statuses: Sequence[str] = (),
) -> list[tuple[str, MetricQuery]]:
    """
    The fixed metric set plus one count per upload type and per pin status.
    `pins_total` is computed once by its own task; per-status tasks only
    publish their own count.
    """
    return [
        ("updateUsersCount", q.CountAll("users", q.COUNT_USERS)),
        ("updateContentRootDagSizeSum", q.SumScalar("content_bytes", q.SUM_CONTENT_DAG_SIZE, what="content bytes")),
        ("updateUploadsCount", q.CountAll("uploads", q.COUNT_UPLOADS)),
        *[
            (f"updateUploadsCount[{t}]", q.CountFiltered("uploads", q.COUNT_UPLOADS_PER_TYPE, t))
            for t in upload_types
        ],
        ("updatePinsCount", q.CountAll("pins", q.COUNT_PINS)),
        *[
            (f"updatePinsCount[{s}]", q.CountFiltered("pins", q.COUNT_PINS_PER_STATUS, s))
            for s in pin_statuses
        ],
        ("updatePinRequestsCount", q.CountAll("pin_requests", q.COUNT_PIN_REQUESTS, what="pin requests")),
    ]


def reduce_outcomes(labels: Sequence[str], outcomes: Sequence[Outcome], log: Logger = logger) -> JobResult:
    """Log every rejected outcome in submission order and keep them all for the caller."""
    if len(labels) != len(outcomes):
        raise ValueError(f"{len(outcomes)} outcome(s) for {len(labels)} task(s)")
    failures: list[TaskFailure] = []
    for index, (label, outcome) in enumerate(zip(labels, outcomes)):
        if not isinstance(outcome, Rejected):
            continue
        failures.append(TaskFailure(index=index, label=label, error=outcome.error))
        log.error("❌ %s failed: %s", label, outcome.error, exc_info=outcome.error)
    return JobResult(outcomes=list(outcomes), failures=failures)


class MetricsCollectionJob:
    """
    One run of the metrics batch: IDLE → RUNNING → SUCCEEDED | FAILED.
    A job object runs once; the scheduler builds a fresh one per invocation.
    """

    def __init__(
            self,
            *,
            read: ReadSource,
            publisher: MetricPublisher,
            concurrency: int,
            upload_types: Sequence[str] = (),
            pin_statuses: Sequence[str] = (),
            queries: Optional[Sequence[tuple[str, MetricQuery]]] = None,
            log: Logger = logger,
    ) -> None:
        self.read = read
        self.publisher = publisher
        self.concurrency = concurrency
        self.queries = list(queries) if queries is not None else build_queries(upload_types, pin_statuses)
        self.log = log

        self.state = JobState.IDLE
        self.tasks: list[TimedTask] = []
        self.result: Optional[JobResult] = None

    def build_tasks(self) -> list[TimedTask]:
        def _bind(query: MetricQuery):
            return lambda: update_metric(query, self.read, self.publisher)

        return [TimedTask(label, _bind(query), log=self.log) for label, query in self.queries]

    async def collect(self) -> JobResult:
        """Run every task and reduce the outcomes without raising task errors."""
        if self.state is not JobState.IDLE:
            raise RuntimeError(f"metrics job already {self.state.value}")
        try:
            limit = check_concurrency_limit(self.concurrency)
        except Exception:
            self.state = JobState.FAILED
            raise

        self.state = JobState.RUNNING
        self.tasks = self.build_tasks()
        try:
            outcomes = await run_bounded(self.tasks, limit)
        except BaseException:
            self.state = JobState.FAILED
            raise

        result = reduce_outcomes([t.label for t in self.tasks], outcomes, self.log)
        self.result = result
        if result.succeeded:
            self.state = JobState.SUCCEEDED
            self.log.info("✅ Done")
        else:
            self.state = JobState.FAILED
            self.log.error("❌ %d of %d metric task(s) failed", len(result.failures), len(self.tasks))
        return result

    async def run(self) -> JobResult:
        """Run the job and raise the first task error, if any."""
        result = await self.collect()
        if result.first_error is not None:
            raise result.first_error
        return result


async def update_metrics(
        *,
        read: ReadSource,
        publisher: MetricPublisher,
        concurrency: int,
        upload_types: Sequence[str] = (),
        pin_statuses: Sequence[str] = (),
) -> JobResult:
    """Calculate metrics from the replica and update their current values on the primary."""
    job = MetricsCollectionJob(
        read=read,
        publisher=publisher,
        concurrency=concurrency,
        upload_types=upload_types,
        pin_statuses=pin_statuses,
    )
    return await job.run()
