"""Bounded worker pool that audits a batch of routes.

A fixed number of workers pull ``ProcessedRoute`` items from one shared list
until it is exhausted. Claiming an item has no await in it, so under asyncio
two workers can never take the same route. A failing audit is logged and
recorded on its item; it never stops the batch.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from lighthouse_runner.artifacts import lookup_result
from lighthouse_runner.context import RunContext
from lighthouse_runner.models import AuditResult
from lighthouse_runner.routes import apply_param_values, join_url

logger = logging.getLogger(__name__)

Invoke = Callable[[str, str], Awaitable[Optional[AuditResult]]]
ProgressCallback = Callable[[int, int], None]


class RouteStatus(enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass
class ProcessedRoute:
    original_route: str
    processed_route: str
    status: RouteStatus = RouteStatus.PENDING
    result: Optional[AuditResult] = None
    error: Optional[str] = None


def default_concurrency() -> int:
    """One worker per CPU, leaving one for the orchestrating process."""
    return max(1, (os.cpu_count() or 1) - 1)


class WorkList:
    """The shared list of work items with an O(1) cursor to the next pending one."""

    def __init__(self, items: Sequence[ProcessedRoute]):
        self.items = list(items)
        self._cursor = 0
        self.completed = 0

    @property
    def total(self) -> int:
        return len(self.items)

    def claim(self) -> Optional[ProcessedRoute]:
        while self._cursor < len(self.items):
            item = self.items[self._cursor]
            self._cursor += 1
            if item.status is RouteStatus.PENDING:
                item.status = RouteStatus.IN_PROGRESS
                return item
        return None

    def finish(self, item: ProcessedRoute) -> int:
        item.status = RouteStatus.DONE
        self.completed += 1
        return self.completed

    def in_progress(self) -> int:
        return sum(1 for item in self.items if item.status is RouteStatus.IN_PROGRESS)


def build_work_items(routes: Sequence[str], param_values: dict[str, str]) -> list[ProcessedRoute]:
    return [
        ProcessedRoute(original_route=route, processed_route=apply_param_values(route, param_values))
        for route in routes
    ]


async def _worker(
    work: WorkList,
    invoke: Invoke,
    base_url: str,
    on_progress: Optional[ProgressCallback],
) -> None:
    while True:
        item = work.claim()
        if item is None:
            return
        url = join_url(base_url, item.processed_route)
        try:
            item.result = await invoke(url, item.processed_route)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            item.error = str(exc) or exc.__class__.__name__
            logger.error("Failed to process route %s: %s", item.processed_route, item.error)

        completed = work.finish(item)
        logger.info(
            "Progress: %d/%d routes completed (%d%%)",
            completed, work.total, round(completed / work.total * 100),
        )
        if on_progress is not None:
            on_progress(completed, work.total)


def collect_results(
    items: Sequence[ProcessedRoute],
    context: RunContext,
    base_url: str,
) -> list[AuditResult]:
    """Join finished items with what the invoker produced, in input order.

    When the invoker returned nothing the artifact is looked up by its file
    name; a missing artifact just means the route has no result.
    """
    results: list[AuditResult] = []
    for item in items:
        if item.status is not RouteStatus.DONE or item.error is not None:
            continue
        result = item.result or lookup_result(context, item.processed_route, base_url)
        if result is None:
            logger.warning("No report found for route %s", item.processed_route)
            continue
        results.append(result)
    return results


async def run_batch(
    routes: Sequence[str],
    param_values: dict[str, str],
    invoke: Invoke,
    *,
    base_url: str,
    context: RunContext,
    concurrency: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> list[AuditResult]:
    limit = default_concurrency() if concurrency is None else concurrency
    if limit < 1:
        raise ValueError(f"concurrency must be at least 1, got {limit}")

    work = WorkList(build_work_items(routes, param_values))
    if not work.total:
        return []

    logger.info("Using concurrency limit of %d parallel processes", limit)
    logger.info("Processing %d routes with dynamic scheduling...", work.total)

    workers = [
        asyncio.create_task(_worker(work, invoke, base_url, on_progress))
        for _ in range(min(limit, work.total))
    ]
    try:
        await asyncio.gather(*workers)
    finally:
        for task in workers:
            if not task.done():
                task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
    logger.info("All %d routes have been processed.", work.total)

    return collect_results(work.items, context, base_url)
