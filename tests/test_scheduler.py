"""Bounded worker pool behaviour."""

from __future__ import annotations

import asyncio
import logging

import pytest

from conftest import FakeInvoker
from lighthouse_runner.context import RunContext, sanitize_route
from lighthouse_runner.scheduler import (
    ProcessedRoute,
    RouteStatus,
    WorkList,
    build_work_items,
    collect_results,
    default_concurrency,
    run_batch,
)

BASE_URL = "http://localhost:4173"


def _run(routes, invoker, context, **kwargs):
    return asyncio.run(
        run_batch(
            routes,
            kwargs.pop("values", {}),
            invoker,
            base_url=BASE_URL,
            context=context,
            **kwargs,
        )
    )


def test_end_to_end_with_presets(run_context: RunContext) -> None:
    """Params are substituted before auditing and both routes come back."""
    invoker = FakeInvoker()
    results = _run(
        ["/", "/blog/:slug"], invoker, run_context,
        values={"slug": "hello-world"}, concurrency=2,
    )

    assert sorted(r.route for r in results) == ["/", "/blog/hello-world"]
    assert sorted(url for url, _ in invoker.calls) == [
        "http://localhost:4173/",
        "http://localhost:4173/blog/hello-world",
    ]
    assert sanitize_route("/") == "root"


def test_never_exceeds_concurrency_limit(run_context: RunContext, monkeypatch) -> None:
    """At no point are more items IN_PROGRESS than the limit allows."""
    lists: list[WorkList] = []

    class TrackedWorkList(WorkList):
        def __init__(self, items):
            super().__init__(items)
            lists.append(self)

    monkeypatch.setattr("lighthouse_runner.scheduler.WorkList", TrackedWorkList)
    invoker = FakeInvoker(delays=[0.003, 0.001, 0.0, 0.002])
    sampled: list[int] = []

    async def sampling_invoker(url, route):
        sampled.append(lists[0].in_progress())
        return await invoker(url, route)

    results = _run([f"/page-{i}" for i in range(12)], sampling_invoker, run_context, concurrency=3)

    assert len(results) == 12
    assert len(sampled) == 12
    assert max(sampled) == 3
    assert all(1 <= count <= 3 for count in sampled)
    assert invoker.max_in_flight == 3
    assert lists[0].in_progress() == 0


def test_pool_is_not_larger_than_the_batch(run_context: RunContext) -> None:
    invoker = FakeInvoker(delays=[0.001])
    _run(["/a", "/b"], invoker, run_context, concurrency=8)
    assert invoker.max_in_flight <= 2


def test_single_failure_does_not_sink_the_batch(
    run_context: RunContext, caplog: pytest.LogCaptureFixture
) -> None:
    """The third audit throws; the other four still produce results."""
    invoker = FakeInvoker(fail_on={3})
    routes = ["/a", "/b", "/c", "/d", "/e"]

    with caplog.at_level(logging.ERROR, logger="lighthouse_runner.scheduler"):
        results = _run(routes, invoker, run_context, concurrency=1)

    assert len(results) == 4
    assert [r.route for r in results] == ["/a", "/b", "/d", "/e"]
    failures = [rec for rec in caplog.records if "Failed to process route" in rec.getMessage()]
    assert len(failures) == 1
    assert "/c" in failures[0].getMessage()
    assert "audit 3 exploded" in failures[0].getMessage()


def test_failure_under_parallel_workers(run_context: RunContext) -> None:
    invoker = FakeInvoker(fail_on={3}, delays=[0.002, 0.0, 0.001])
    results = _run([f"/r{i}" for i in range(5)], invoker, run_context, concurrency=3)
    assert len(results) == 4
    assert len(invoker.calls) == 5


def test_progress_is_monotonic(run_context: RunContext) -> None:
    seen: list[tuple[int, int]] = []
    invoker = FakeInvoker(fail_on={2}, delays=[0.002, 0.0, 0.001])

    _run(
        [f"/r{i}" for i in range(6)], invoker, run_context,
        concurrency=2, on_progress=lambda done, total: seen.append((done, total)),
    )

    assert seen == [(n, 6) for n in range(1, 7)]


def test_failing_progress_callback_stops_every_worker(run_context: RunContext) -> None:
    invoker = FakeInvoker(delays=[0.0, 0.05, 0.05])

    def explode(done: int, total: int) -> None:
        raise RuntimeError("progress sink is gone")

    async def scenario() -> list[asyncio.Task]:
        with pytest.raises(RuntimeError, match="progress sink"):
            await run_batch(
                [f"/r{i}" for i in range(6)], {}, invoker,
                base_url=BASE_URL, context=run_context, concurrency=3, on_progress=explode,
            )
        return [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]

    assert asyncio.run(scenario()) == []
    assert invoker.in_flight == 0
    assert len(invoker.calls) < 6


def test_missing_artifact_is_looked_up_on_disk(run_context: RunContext) -> None:
    """An invoker that returns nothing is joined against its artifact by name."""
    run_context.artifact_path("/").write_text("<html></html>", encoding="utf-8")
    invoker = FakeInvoker(return_none=True)

    results = _run(["/", "/missing"], invoker, run_context, concurrency=2)

    assert len(results) == 1
    assert results[0].route == "/"
    assert results[0].output_path.endswith("root.html")
    assert results[0].url == "http://localhost:4173/"
    assert results[0].scores is None


def test_empty_batch_returns_no_results(run_context: RunContext) -> None:
    invoker = FakeInvoker()
    assert _run([], invoker, run_context, concurrency=2) == []
    assert invoker.calls == []


def test_invalid_concurrency_is_rejected(run_context: RunContext) -> None:
    with pytest.raises(ValueError):
        _run(["/"], FakeInvoker(), run_context, concurrency=0)


@pytest.mark.parametrize("cpus, expected", [(8, 7), (2, 1), (1, 1), (None, 1)])
def test_default_concurrency_leaves_one_cpu(monkeypatch, cpus, expected) -> None:
    monkeypatch.setattr("lighthouse_runner.scheduler.os.cpu_count", lambda: cpus)
    assert default_concurrency() == expected


def test_work_list_claims_each_item_once() -> None:
    work = WorkList(build_work_items(["/a", "/b"], {}))

    first, second = work.claim(), work.claim()

    assert (first.processed_route, second.processed_route) == ("/a", "/b")
    assert work.claim() is None
    assert work.in_progress() == 2
    work.finish(first)
    assert first.status is RouteStatus.DONE
    assert work.in_progress() == 1


def test_collect_results_skips_unfinished_and_failed(run_context: RunContext) -> None:
    items = [
        ProcessedRoute("/", "/", status=RouteStatus.PENDING),
        ProcessedRoute("/x", "/x", status=RouteStatus.DONE, error="boom"),
    ]
    run_context.artifact_path("/x").write_text("", encoding="utf-8")
    assert collect_results(items, run_context, BASE_URL) == []
