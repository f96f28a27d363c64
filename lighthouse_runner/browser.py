"""Shared Chromium session for authenticated audits.

A persistent Playwright context is used because its pages live in Chrome's
default browser context, which is where Lighthouse opens its tab when it
connects over the remote-debugging port. Cookies set by the login script are
therefore visible to every audit.
"""

from __future__ import annotations

import json
import logging
import socket
import tempfile
from pathlib import Path
from typing import Optional

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright
from pydantic import ValidationError

from lighthouse_runner.config import AUTH_STEP_TIMEOUT_MS, BROWSER_ARGS
from lighthouse_runner.errors import ConfigError
from lighthouse_runner.models import AuthConfig, AuthStep

logger = logging.getLogger(__name__)


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def load_auth_config(path: Optional[Path]) -> Optional[AuthConfig]:
    """Read the login script; a missing file only warns."""
    if path is None:
        return None
    path = Path(path)
    if not path.is_file():
        logger.warning("Auth config file %s does not exist.", path)
        return None
    try:
        return AuthConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (ValueError, ValidationError) as exc:
        raise ConfigError(f"Invalid auth config {path}: {exc}") from exc


async def run_step(page: Page, step: AuthStep) -> None:
    timeout = step.timeout_ms if step.timeout_ms is not None else AUTH_STEP_TIMEOUT_MS
    if step.action == "goto":
        await page.goto(step.url, timeout=timeout)
    elif step.action == "fill":
        await page.fill(step.selector, step.value or "", timeout=timeout)
    elif step.action == "click":
        await page.click(step.selector, timeout=timeout)
    elif step.action == "press":
        await page.press(step.selector, step.key, timeout=timeout)
    elif step.action == "wait_for_selector":
        await page.wait_for_selector(step.selector, timeout=timeout)
    elif step.action == "wait_for_url":
        await page.wait_for_url(step.url, timeout=timeout)
    elif step.action == "wait":
        await page.wait_for_timeout(timeout)


async def authenticate(context: BrowserContext, config: AuthConfig) -> None:
    page = await context.new_page()
    try:
        for number, step in enumerate(config.steps, start=1):
            logger.debug("Auth step %d: %s", number, step.action)
            await run_step(page, step)
        logger.info("Authentication script finished (%d steps).", len(config.steps))
    finally:
        await page.close()


class BrowserSession:
    """``async with BrowserSession(auth) as session`` gives a running Chrome on ``session.port``."""

    def __init__(self, auth: Optional[AuthConfig] = None, *, port: Optional[int] = None):
        self.auth = auth
        self.port = port or free_port()
        self._playwright: Optional[Playwright] = None
        self._context: Optional[BrowserContext] = None
        self._profile: Optional[tempfile.TemporaryDirectory] = None

    async def __aenter__(self) -> "BrowserSession":
        self._profile = tempfile.TemporaryDirectory(prefix="lighthouse-runner-")
        self._playwright = await async_playwright().start()
        try:
            self._context = await self._playwright.chromium.launch_persistent_context(
                self._profile.name,
                headless=True,
                args=[*BROWSER_ARGS, f"--remote-debugging-port={self.port}"],
            )
            if self.auth is not None:
                await authenticate(self._context, self.auth)
        except BaseException:
            await self.close()
            raise
        logger.info("Shared browser listening on port %d", self.port)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._context is not None:
            await self._context.close()
            self._context = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        if self._profile is not None:
            self._profile.cleanup()
            self._profile = None
