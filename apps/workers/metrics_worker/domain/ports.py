from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .entities import Metric
from .values import MetricValue


@runtime_checkable
class ReadSource(Protocol):
    async def fetch(self, sql: str, *params: Any) -> Sequence[Mapping[str, Any]]:
        """
        Run a read-only query against the replica and return every row as a
        column-name → value mapping. Failures surface as ReadFailure.
        """
        ...

    async def close(self) -> None:
        """
        Release connections held by the read source. Called once on shutdown.
        """
        pass


class MetricPublisher(ABC):
    """
    Port for storing the current value of a metric.
    - One row per metric name; writes are upserts that refresh `updated_at`.
    - Safe to call concurrently for different names.
    """

    @abstractmethod
    async def publish(self, name: str, value: MetricValue) -> None:
        """
        Insert the metric if unseen, otherwise overwrite its value and timestamp.
        A failed call leaves no partial row behind. Failures surface as WriteFailure.
        """
        ...

    @abstractmethod
    async def get(self, name: str) -> Optional[Metric]:
        """
        Read back the stored row for `name`, or None if it was never published.
        """
        ...

    async def close(self) -> None:
        """
        Release connections held by the store. Called once on shutdown.
        """
        pass
