"""Bounded worker pool for page tasks.

A fixed number of worker coroutines drain one queue. ``queue.join()`` is
the single barrier: it returns once every item has settled, whether its
handler returned or raised. A failing item never cancels its siblings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class Outcome(Generic[T, R]):
    """How one item settled: either ``result`` or ``error`` is set."""

    item: T
    result: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_bounded(
    items: Sequence[T],
    handler: Callable[[T], Awaitable[R]],
    concurrency: int,
    log: FilteringBoundLogger,
) -> list[Outcome[T, R]]:
    """Run *handler* over *items* with at most *concurrency* in flight.

    Items are queued in order, but complete in any order. Outcomes are
    returned in submission order.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    queue: asyncio.Queue[int] = asyncio.Queue()
    outcomes: list[Outcome[T, R]] = [Outcome(item=item) for item in items]
    for index in range(len(items)):
        queue.put_nowait(index)

    async def worker(worker_id: int) -> None:
        while True:
            index = await queue.get()
            outcome = outcomes[index]
            try:
                outcome.result = await handler(outcome.item)
            except asyncio.CancelledError:
                raise
            except BaseException as exc:
                # Workers survive everything except their own cancellation
                outcome.error = exc
                log.debug("task_failed", worker=worker_id, index=index, error=str(exc))
            finally:
                queue.task_done()

    workers = [
        asyncio.create_task(worker(worker_id), name=f"notablog-worker-{worker_id}")
        for worker_id in range(min(concurrency, len(items)))
    ]
    try:
        await queue.join()
    finally:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
    return outcomes
