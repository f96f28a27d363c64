"""Runs one Lighthouse audit through the Lighthouse CLI."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional

from lighthouse_runner.artifacts import read_scores
from lighthouse_runner.config import CHROME_FLAGS, LIGHTHOUSE_TIMEOUT
from lighthouse_runner.context import RunContext
from lighthouse_runner.errors import AuditError, LighthouseNotFoundError
from lighthouse_runner.models import AuditResult

logger = logging.getLogger(__name__)


def find_lighthouse(project_dir: Optional[Path] = None) -> list[str]:
    """Command prefix that starts the Lighthouse CLI.

    The project's own install wins over a global one.
    """
    project_dir = project_dir or Path.cwd()
    local_bin = project_dir / "node_modules" / ".bin" / "lighthouse"
    if local_bin.is_file():
        return [str(local_bin)]

    local_cli = project_dir / "node_modules" / "lighthouse" / "cli" / "index.js"
    node = shutil.which("node")
    if local_cli.is_file() and node:
        return [node, str(local_cli)]

    global_bin = shutil.which("lighthouse")
    if global_bin:
        return [global_bin]

    raise LighthouseNotFoundError()


def build_lighthouse_args(
    url: str,
    output_path: Path,
    *,
    quiet: bool = False,
    config_path: Optional[Path] = None,
    port: Optional[int] = None,
) -> list[str]:
    args = [url]
    if config_path is not None:
        if Path(config_path).is_file():
            args.append(f"--config-path={config_path}")
        else:
            logger.warning("Lighthouse config %s does not exist, using defaults.", config_path)
    args += ["--output=html", f"--output-path={output_path}"]
    if port is not None:
        args.append(f"--port={port}")
    else:
        args.append(f"--chrome-flags={CHROME_FLAGS}")
    if quiet:
        args.append("--quiet")
    return args


class LighthouseInvoker:
    """Callable handed to the scheduler: ``await invoker(url, route)``.

    ``port`` points Lighthouse at an already running (and possibly
    authenticated) Chrome instead of letting it launch its own.
    """

    def __init__(
        self,
        context: RunContext,
        *,
        quiet: bool = False,
        config_path: Optional[Path] = None,
        port: Optional[int] = None,
        command: Optional[list[str]] = None,
        timeout: float = LIGHTHOUSE_TIMEOUT,
    ):
        self.context = context
        self.quiet = quiet
        self.config_path = config_path
        self.port = port
        self.command = command or find_lighthouse()
        self.timeout = timeout

    async def __call__(self, url: str, route: str) -> AuditResult:
        output_path = self.context.artifact_path(route)
        args = build_lighthouse_args(
            url, output_path, quiet=self.quiet, config_path=self.config_path, port=self.port,
        )
        logger.info("Running Lighthouse on %s...", url)

        process = await asyncio.create_subprocess_exec(
            *self.command, *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise AuditError(f"Lighthouse timed out after {self.timeout:.0f}s for {url}")

        if not self.quiet and stdout:
            logger.debug(stdout.decode(errors="replace"))
        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip().splitlines()
            tail = f": {detail[-1]}" if detail else ""
            raise AuditError(
                f"Lighthouse exited with code {process.returncode}. "
                f"Ensure the frontend is running{tail}"
            )

        logger.info("Lighthouse audit completed for %s", url)
        logger.info("Report saved to %s", output_path)
        return AuditResult(
            output_path=str(output_path),
            route=route,
            url=url,
            scores=read_scores(output_path),
        )
