"""Reading Lighthouse HTML artifacts back: category scores and report lookup."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from bs4 import BeautifulSoup
from pydantic import ValidationError

from lighthouse_runner.config import CATEGORY_FIELDS
from lighthouse_runner.context import RunContext
from lighthouse_runner.models import AuditResult, CategoryScores
from lighthouse_runner.routes import join_url

logger = logging.getLogger(__name__)

LHR_MARKER = "window.__LIGHTHOUSE_JSON__"


def _embedded_report(html: str) -> Optional[dict]:
    """Return the Lighthouse result JSON that the HTML report embeds."""
    soup = BeautifulSoup(html, "lxml")
    for script in soup.find_all("script"):
        text = script.string or script.get_text()
        if LHR_MARKER not in text:
            continue
        _, _, payload = text.partition(LHR_MARKER)
        payload = payload.strip().lstrip("=").strip().rstrip(";").strip()
        try:
            return json.loads(payload)
        except ValueError:
            continue
    return None


def scores_from_lhr(lhr: dict) -> Optional[CategoryScores]:
    categories = lhr.get("categories") or {}
    found = {}
    for category_id, field_name in CATEGORY_FIELDS.items():
        category = categories.get(category_id)
        if isinstance(category, dict):
            found[field_name] = category.get("score")
    if not found:
        return None
    try:
        return CategoryScores(**found)
    except ValidationError:
        return None


def read_scores(path: Path | str) -> Optional[CategoryScores]:
    """Category scores of an HTML report, or None when they can't be read."""
    try:
        html = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        logger.debug("Could not read report %s: %s", path, exc)
        return None
    lhr = _embedded_report(html)
    if lhr is None:
        logger.debug("No embedded Lighthouse result in %s", path)
        return None
    return scores_from_lhr(lhr)


def lookup_result(context: RunContext, route: str, base_url: str) -> Optional[AuditResult]:
    """Build a result for ``route`` from its artifact on disk, if one was written."""
    artifact = context.find_artifact(route)
    if artifact is None:
        return None
    return AuditResult(
        output_path=str(artifact),
        route=route,
        url=join_url(base_url, route),
        scores=read_scores(artifact),
    )
