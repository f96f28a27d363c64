"""HTML index for a run's reports, and the redirect to the latest run."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment

from lighthouse_runner.config import CATEGORY_LABELS
from lighthouse_runner.context import RunContext
from lighthouse_runner.models import AuditResult, RunSummary

logger = logging.getLogger(__name__)

RESULTS_FILENAME = "results.json"

INDEX_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Lighthouse Reports Index</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 1200px; margin: 0 auto; padding: 20px; }
        h1 { border-bottom: 1px solid #eaecef; padding-bottom: 10px; }
        .report-list { list-style-type: none; padding: 0; }
        .report-item { margin: 10px 0; padding: 15px; background-color: #f6f8fa; border-radius: 6px; display: flex; justify-content: space-between; align-items: center; }
        .report-item:hover { background-color: #eef1f5; }
        .route { font-weight: bold; flex: 1; }
        .scores { display: flex; gap: 12px; margin-right: 20px; font-size: 0.9em; }
        .good { color: #0c6; } .average { color: #fa3; } .poor { color: #f33; }
        a { color: #0366d6; text-decoration: none; }
        a:hover { text-decoration: underline; }
        .meta-info { color: #666; font-size: 0.9em; margin-top: 30px; border-top: 1px solid #eaecef; padding-top: 10px; }
    </style>
</head>
<body>
    <h1>Lighthouse Reports</h1>
    <p>Generated on {{ generated_at }}</p>
    <ul class="report-list">
    {% for report in reports %}
        <li class="report-item">
            <span class="route">{{ report.route }}</span>
            {% if report.scores %}
            <span class="scores">
            {% for field, label in labels.items() %}
                {% set score = report.scores[field] %}
                {% if score is not none %}
                <span class="{{ score | rating }}">{{ label }}: {{ (score * 100) | round | int }}</span>
                {% endif %}
            {% endfor %}
            </span>
            {% endif %}
            <a href="./{{ report.filename }}" target="_blank">View Report</a>
        </li>
    {% endfor %}
    </ul>
    <div class="meta-info">
        <p>Base URL: {{ base_url }}</p>
        <p>Subdirectory: {{ sub_dir or "None" }}</p>
        <p>Total reports: {{ reports | length }}</p>
    </div>
</body>
</html>
"""

REDIRECT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta http-equiv="refresh" content="0;url={{ target }}">
    <title>Redirecting to latest Lighthouse reports</title>
</head>
<body>
    <p>Redirecting to the latest Lighthouse reports...</p>
    <p><a href="{{ target }}">Click here if you are not redirected</a></p>
</body>
</html>
"""


def _rating(score: float) -> str:
    if score >= 0.9:
        return "good"
    if score >= 0.5:
        return "average"
    return "poor"


def _environment() -> Environment:
    env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
    env.filters["rating"] = _rating
    return env


def render_index(
    reports: Sequence[AuditResult],
    base_url: str,
    sub_dir: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    rows = [
        {
            "route": report.route,
            "filename": Path(report.output_path).name,
            "scores": report.scores.model_dump() if report.scores else None,
        }
        for report in reports
    ]
    template = _environment().from_string(INDEX_TEMPLATE)
    return template.render(
        reports=rows,
        labels=CATEGORY_LABELS,
        base_url=base_url,
        sub_dir=sub_dir,
        generated_at=(generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S"),
    )


def render_redirect(target: str) -> str:
    return _environment().from_string(REDIRECT_TEMPLATE).render(target=target)


def write_index(
    reports: Sequence[AuditResult],
    context: RunContext,
    base_url: str,
    sub_dir: Optional[str] = None,
) -> Path:
    """Write the run index, its results.json and the root redirect; return the index path."""
    index_path = context.index_path
    index_path.write_text(render_index(reports, base_url, sub_dir), encoding="utf-8")

    summary = RunSummary(
        report_dir=str(context.report_dir),
        base_url=base_url,
        sub_dir=sub_dir,
        reports=list(reports),
    )
    (context.report_dir / RESULTS_FILENAME).write_text(
        summary.model_dump_json(indent=2), encoding="utf-8",
    )

    relative = context.report_dir.relative_to(context.reports_root).as_posix()
    context.root_index_path.write_text(
        render_redirect(f"{relative}/{index_path.name}"), encoding="utf-8",
    )
    logger.info("Index generated at: %s", index_path)
    return index_path


def latest_report_dir(reports_root: Path | str) -> Optional[Path]:
    """Most recent run directory that has a results file; run names sort by time."""
    root = Path(reports_root)
    if not root.is_dir():
        return None
    runs = sorted(
        (p for p in root.iterdir() if p.is_dir() and (p / RESULTS_FILENAME).is_file()),
        key=lambda p: p.name,
    )
    return runs[-1] if runs else None


def load_summary(report_dir: Path) -> RunSummary:
    return RunSummary.model_validate_json((report_dir / RESULTS_FILENAME).read_text(encoding="utf-8"))
