from __future__ import annotations

import re
from decimal import Decimal
from typing import Optional, Union

MetricValue = Union[int, Decimal]

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify_category(category: str) -> str:
    """Lowercase a category and collapse anything non-alphanumeric into `_`."""
    slug = _NON_SLUG.sub("_", category.strip().lower()).strip("_")
    if not slug:
        raise ValueError(f"category {category!r} has no usable characters")
    return slug


def metric_name(base: str, category: Optional[str] = None) -> str:
    """
    Build a stored metric name.
        metric_name("uploads")          -> "uploads_total"
        metric_name("uploads", "Nft")   -> "uploads_nft_total"
        metric_name("pins", "PinQueued") -> "pins_pinqueued_total"
    """
    if not base:
        raise ValueError("metric base name is empty")
    if category is None:
        return f"{base}_total"
    return f"{base}_{slugify_category(category)}_total"


def coerce_metric_value(raw: object) -> MetricValue:
    """
    Normalize an aggregate column into an exact number.
    SUM over an empty table yields NULL, which is stored as 0. Integral
    Decimals (Postgres `numeric`) become `int` so large sums never overflow.
    """
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise TypeError(f"unexpected boolean metric value {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, Decimal):
        if not raw.is_finite():
            raise ValueError(f"non-finite metric value {raw!r}")
        return int(raw) if raw == raw.to_integral_value() else raw
    if isinstance(raw, str):
        return coerce_metric_value(Decimal(raw))
    if isinstance(raw, float):
        return coerce_metric_value(Decimal(repr(raw)))
    raise TypeError(f"unsupported metric value type {type(raw).__name__}")
