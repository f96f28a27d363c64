import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from lighthouse_runner.config import INDEX_FILENAME, REPORTS_DIR_NAME, ROUTES_DIR_PARTS
from lighthouse_runner.errors import NoRoutesError
from lighthouse_runner.index import latest_report_dir, load_summary
from lighthouse_runner.models import RunSummary, split_patterns
from lighthouse_runner.report import generate_pdf
from lighthouse_runner.routes import build_route_set


class RoutesResponse(BaseModel):
    sub_dir: Optional[str] = None
    display: list[str]
    execution: list[str]


def create_app(reports_root: Optional[Path] = None, routes_dir: Optional[Path] = None) -> FastAPI:
    reports_root = Path(reports_root or os.environ.get("LIGHTHOUSE_REPORTS_DIR", REPORTS_DIR_NAME))
    routes_dir = Path(routes_dir or os.environ.get("LIGHTHOUSE_ROUTES_DIR", Path(*ROUTES_DIR_PARTS)))

    app = FastAPI(title="Lighthouse Runner", version="1.1.0")
    app.mount("/reports", StaticFiles(directory=reports_root, check_dir=False), name="reports")

    def _latest() -> Path:
        report_dir = latest_report_dir(reports_root)
        if report_dir is None:
            raise HTTPException(status_code=404, detail="No Lighthouse reports have been generated yet")
        return report_dir

    @app.get("/")
    async def serve_index():
        index = _latest() / INDEX_FILENAME
        if not index.is_file():
            raise HTTPException(status_code=404, detail="Report index missing")
        return FileResponse(index)

    @app.get("/api/routes", response_model=RoutesResponse)
    async def list_routes(sub_dir: Optional[str] = None, ignore: Optional[str] = None):
        try:
            route_set = build_route_set(routes_dir, sub_dir, split_patterns(ignore))
        except NoRoutesError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return RoutesResponse(sub_dir=sub_dir, display=route_set.display, execution=route_set.execution)

    @app.get("/api/reports", response_model=RunSummary)
    async def latest_reports():
        return load_summary(_latest())

    @app.get("/api/reports/pdf")
    async def export_pdf():
        summary = load_summary(_latest())
        pdf_bytes = generate_pdf(summary.reports, summary.base_url, summary.sub_dir)
        return Response(
            content=pdf_bytes,
            media_type="application/pdf",
            headers={"Content-Disposition": "attachment; filename=lighthouse-summary.pdf"},
        )

    return app


app = create_app()
