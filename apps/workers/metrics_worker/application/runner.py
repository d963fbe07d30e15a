"""
Bounded Task Runner
- Runs zero-argument coroutine functions with at most `concurrency` in flight.
- Waits for every task; a failing task never stops its siblings.
- Returns one Outcome per task, in submission order (not completion order).
"""
# runner.py
from __future__ import annotations

import asyncio
from logging import getLogger
from typing import Any, Awaitable, Callable, Iterator, Optional, Sequence

from metrics_worker.domain.entities import Fulfilled, Outcome, Rejected
from metrics_worker.domain.errors import InvalidConcurrencyLimit

log = getLogger(__name__)

Thunk = Callable[[], Awaitable[Any]]


def check_concurrency_limit(concurrency: object) -> int:
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise InvalidConcurrencyLimit(concurrency)
    return concurrency


async def run_bounded(thunks: Sequence[Thunk], concurrency: int) -> list[Outcome]:
    """
    Settle every thunk under a concurrency cap.
    - A fixed pool of min(concurrency, len(thunks)) workers drains a shared queue.
    - Each worker starts the next queued thunk as soon as its current one settles.
    - `Exception`s become `Rejected`; cancellation is not swallowed.
    """
    limit = check_concurrency_limit(concurrency)
    if not thunks:
        return []

    results: list[Optional[Outcome]] = [None] * len(thunks)
    queue: Iterator[tuple[int, Thunk]] = iter(enumerate(thunks))

    async def _worker() -> None:
        # single event loop: next() on the shared iterator is never interleaved
        for index, thunk in queue:
            try:
                value = await thunk()
            except Exception as e:
                results[index] = Rejected(e)
            else:
                results[index] = Fulfilled(value)

    size = min(limit, len(thunks))
    log.debug("running %d task(s) with %d worker(s)", len(thunks), size)
    workers = [asyncio.ensure_future(_worker()) for _ in range(size)]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        # no worker may outlive the run (callers close pools right after)
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    outcomes: list[Outcome] = []
    for index, outcome in enumerate(results):
        if outcome is None:
            raise RuntimeError(f"task #{index} finished without an outcome")
        outcomes.append(outcome)
    return outcomes
