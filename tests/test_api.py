"""Report browser HTTP API."""

from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from lighthouse_runner.context import RunContext
from lighthouse_runner.index import write_index
from lighthouse_runner.models import AuditResult, CategoryScores, RunOptions, split_patterns
from main import create_app


def _client(tmp_path: Path, routes_dir: Path) -> TestClient:
    return TestClient(create_app(reports_root=tmp_path / "reports", routes_dir=routes_dir))


def _publish_run(tmp_path: Path) -> RunContext:
    context = RunContext(tmp_path / "reports")
    artifact = context.artifact_path("/")
    artifact.write_text("<html>lighthouse</html>", encoding="utf-8")
    write_index(
        [AuditResult(output_path=str(artifact), route="/", url="http://localhost:4173/",
                     scores=CategoryScores(performance=0.5))],
        context,
        "http://localhost:4173",
    )
    return context


def test_routes_endpoint(tmp_path: Path, routes_dir: Path) -> None:
    client = _client(tmp_path, routes_dir)

    resp = client.get("/api/routes", params={"ignore": "/users*"})

    assert resp.status_code == 200
    assert resp.json()["display"] == ["/about", "/", "/blog/:slug"]


def test_routes_endpoint_splits_ignore_like_the_cli(tmp_path: Path, routes_dir: Path) -> None:
    raw = " /users* , ,/about "
    resp = _client(tmp_path, routes_dir).get("/api/routes", params={"ignore": raw})

    assert split_patterns(raw) == RunOptions(ignore=raw).ignore == ["/users*", "/about"]
    assert resp.json()["display"] == ["/", "/blog/:slug"]


def test_routes_endpoint_with_sub_dir(tmp_path: Path, routes_dir: Path) -> None:
    resp = _client(tmp_path, routes_dir).get("/api/routes", params={"sub_dir": "/users"})
    body = resp.json()
    assert body["display"] == ["/", "/:id", "/:id/settings"]
    assert body["execution"] == ["/users", "/users/:id", "/users/:id/settings"]


def test_routes_endpoint_without_routes(tmp_path: Path) -> None:
    resp = _client(tmp_path, tmp_path / "nothing").get("/api/routes")
    assert resp.status_code == 404


def test_reports_404_before_any_run(tmp_path: Path, routes_dir: Path) -> None:
    client = _client(tmp_path, routes_dir)
    assert client.get("/api/reports").status_code == 404
    assert client.get("/").status_code == 404


def test_reports_after_a_run(tmp_path: Path, routes_dir: Path) -> None:
    context = _publish_run(tmp_path)
    client = _client(tmp_path, routes_dir)

    summary = client.get("/api/reports").json()
    assert summary["reports"][0]["route"] == "/"
    assert summary["reports"][0]["scores"]["performance"] == 0.5

    index = client.get("/")
    assert index.status_code == 200
    assert "View Report" in index.text

    artifact = client.get(f"/reports/{context.report_dir.name}/root.html")
    assert artifact.status_code == 200
    assert "lighthouse" in artifact.text

    pdf = client.get("/api/reports/pdf")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")
