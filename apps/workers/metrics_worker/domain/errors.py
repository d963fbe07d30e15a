from __future__ import annotations


class MetricsJobError(Exception):
    """Base class for failures raised while collecting or publishing metrics."""


class EmptyResultError(MetricsJobError):
    """
    An aggregate query that always yields exactly one row returned none.
    Treated as a data-integrity fault rather than a zero-valued metric.
    """

    def __init__(self, what: str):
        super().__init__(f"no rows returned counting {what}")
        self.what = what


class ReadFailure(MetricsJobError):
    """The read source rejected or failed to execute an aggregate query."""


class WriteFailure(MetricsJobError):
    """The metric upsert failed on the write store."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"failed to publish metric {name!r}: {reason}")
        self.name = name


class InvalidConcurrencyLimit(MetricsJobError, ValueError):
    def __init__(self, limit: object):
        super().__init__(f"concurrency limit must be a positive integer, got {limit!r}")
        self.limit = limit
