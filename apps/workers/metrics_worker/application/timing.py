from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging import Logger, getLogger
from time import monotonic
from typing import Any, Awaitable, Callable, Optional

logger = getLogger("metrics:updateMetrics")


@dataclass
class TimedTask:
    """
    A labelled unit of work that logs how long it took, success or failure.
    Usage:
        task = TimedTask("updateUsersCount", lambda: update_users_count(ro, rw))
        await task()
        task.duration_ms  # set once the task settles
    """
    label: str
    fn: Callable[[], Awaitable[Any]]
    log: Logger = field(default=logger, repr=False)

    started_at: Optional[datetime] = None
    duration_ms: Optional[int] = None

    async def __call__(self) -> Any:
        if self.started_at is not None:
            raise RuntimeError(f"task {self.label!r} already ran")
        self.started_at = datetime.now(timezone.utc)
        start = monotonic()
        try:
            return await self.fn()
        finally:
            self.duration_ms = int((monotonic() - start) * 1000)
            self.log.info(
                "%s took: %dms", self.label, self.duration_ms,
                extra={"task": self.label, "elapsed_ms": self.duration_ms},
            )
