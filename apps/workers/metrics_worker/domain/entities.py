from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar, Union

from .values import MetricValue

T = TypeVar("T")


@dataclass
class Metric:
    name: str
    value: MetricValue
    updated_at: datetime


@dataclass(frozen=True)
class Fulfilled(Generic[T]):
    value: T
    ok = True


@dataclass(frozen=True)
class Rejected:
    error: BaseException
    ok = False


Outcome = Union[Fulfilled[Any], Rejected]
