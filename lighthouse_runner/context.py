"""Run-scoped state: where this run's reports live and how artifacts are named."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from lighthouse_runner.config import (
    INDEX_FILENAME,
    REPORT_DIR_PREFIX,
    ROOT_ARTIFACT_NAME,
    SUMMARY_PDF_FILENAME,
)

logger = logging.getLogger(__name__)

_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")


def sanitize_route(route: str) -> str:
    """Turn a route into a file-name stem; ``/`` becomes ``root``."""
    if route == "/":
        return ROOT_ARTIFACT_NAME
    name = route[1:] if route.startswith("/") else route
    name = name.replace("/", "-")
    return _INVALID_CHARS.sub("_", name)


def _timestamp(now: datetime) -> str:
    stamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    stamp = stamp.replace("+00:00", "Z")
    return re.sub(r"[:.]", "-", stamp)


class RunContext:
    """Owns the timestamped report directory of a single run.

    The directory is created on construction, so every component handed the
    same context writes to and reads from the same place.
    """

    def __init__(self, reports_root: Path | str, now: Optional[datetime] = None):
        self.reports_root = Path(reports_root)
        self.started_at = now or datetime.now(timezone.utc)
        self.report_dir = self.reports_root / f"{REPORT_DIR_PREFIX}{_timestamp(self.started_at)}"
        if not self.report_dir.exists():
            self.report_dir.mkdir(parents=True)
            logger.info("Created report directory: %s", self.report_dir)

    def artifact_path(self, route: str) -> Path:
        return self.report_dir / f"{sanitize_route(route)}.html"

    def find_artifact(self, route: str) -> Optional[Path]:
        path = self.artifact_path(route)
        return path if path.is_file() else None

    @property
    def index_path(self) -> Path:
        return self.report_dir / INDEX_FILENAME

    @property
    def root_index_path(self) -> Path:
        return self.reports_root / INDEX_FILENAME

    @property
    def summary_pdf_path(self) -> Path:
        return self.report_dir / SUMMARY_PDF_FILENAME
