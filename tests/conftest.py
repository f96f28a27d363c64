"""Shared fixtures: a SvelteKit-like routes tree and fake audit invokers."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from lighthouse_runner.context import RunContext
from lighthouse_runner.models import AuditResult, CategoryScores

PAGE = "+page.svelte"

SAMPLE_PAGES = [
    "+page.svelte",
    "(marketing)/about/+page.svelte",
    ".svelte-kit/generated/+page.svelte",
    "blog/[slug]/+page.svelte",
    "users/+page.svelte",
    "users/[id]/+page.svelte",
    "users/[id]/settings/+page.svelte",
    "users/[id]/(tabs)/+layout.svelte",
    "api/health/+server.ts",
]


def make_tree(root: Path, files: Iterable[str]) -> Path:
    for rel in files:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("<script></script>\n", encoding="utf-8")
    return root


@pytest.fixture
def routes_dir(tmp_path: Path) -> Path:
    return make_tree(tmp_path / "src" / "routes", SAMPLE_PAGES)


@pytest.fixture
def run_context(tmp_path: Path) -> RunContext:
    return RunContext(tmp_path / "lighthouse-reports")


class FakeInvoker:
    """Records calls, tracks concurrency and fails on chosen call numbers."""

    def __init__(
        self,
        *,
        fail_on: Iterable[int] = (),
        delays: Optional[List[float]] = None,
        return_none: bool = False,
        exc_type: type = RuntimeError,
    ) -> None:
        self.exc_type = exc_type
        self.fail_on = set(fail_on)
        self.delays = delays or [0.0]
        self.return_none = return_none
        self.calls: List[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, url: str, route: str) -> Optional[AuditResult]:
        self.calls.append((url, route))
        number = len(self.calls)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays[(number - 1) % len(self.delays)])
            if number in self.fail_on:
                raise self.exc_type(f"audit {number} exploded")
            if self.return_none:
                return None
            return AuditResult(
                output_path=f"/tmp/{route.strip('/') or 'root'}.html",
                route=route,
                url=url,
                scores=CategoryScores(performance=0.9, accessibility=1, best_practices=0.8, seo=0.95),
            )
        finally:
            self.in_flight -= 1


class FakePrompt:
    """Answers prompts from a list and remembers what was asked."""

    def __init__(self, answers: Iterable[str]) -> None:
        self.answers = list(answers)
        self.asked: List[str] = []

    async def __call__(self, text: str) -> str:
        self.asked.append(text)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)
