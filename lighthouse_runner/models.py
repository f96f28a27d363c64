from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError, field_validator

from lighthouse_runner.config import (
    DEFAULT_BASE_URL,
    REPORTS_DIR_NAME,
    ROUTES_DIR_PARTS,
)

_HTTP_URL = TypeAdapter(HttpUrl)


def split_patterns(value) -> list[str]:
    """Comma separated (or already split) ignore patterns, stripped, blanks dropped."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [pattern.strip() for pattern in value if pattern and pattern.strip()]


class CategoryScores(BaseModel):
    performance: Optional[float] = Field(default=None, ge=0, le=1)
    accessibility: Optional[float] = Field(default=None, ge=0, le=1)
    best_practices: Optional[float] = Field(default=None, ge=0, le=1)
    seo: Optional[float] = Field(default=None, ge=0, le=1)


class AuditResult(BaseModel):
    output_path: str
    route: str
    url: str
    scores: Optional[CategoryScores] = None


class RunSummary(BaseModel):
    report_dir: str
    base_url: str
    sub_dir: Optional[str] = None
    reports: list[AuditResult]


# --- Authentication script ---

class AuthStep(BaseModel):
    action: Literal["goto", "fill", "click", "press", "wait_for_selector", "wait_for_url", "wait"]
    url: Optional[str] = None
    selector: Optional[str] = None
    value: Optional[str] = None
    key: Optional[str] = None
    timeout_ms: Optional[int] = Field(default=None, ge=0)


class AuthConfig(BaseModel):
    steps: list[AuthStep]


# --- Run options ---

class RunOptions(BaseModel):
    """Validated view of the command line, built once at startup."""

    run_all: bool = False
    sub_dir: Optional[str] = None
    quiet: bool = False
    view: bool = False
    base_url: str = DEFAULT_BASE_URL
    params: dict[str, str] = Field(default_factory=dict)
    config_path: Optional[Path] = None
    ignore: list[str] = Field(default_factory=list)
    auth_path: Optional[Path] = None
    concurrency: Optional[int] = Field(default=None, ge=1)
    routes_dir: Path = Field(default_factory=lambda: Path.cwd().joinpath(*ROUTES_DIR_PARTS))
    reports_dir: Path = Field(default_factory=lambda: Path.cwd() / REPORTS_DIR_NAME)
    pdf: bool = False

    @field_validator("base_url")
    @classmethod
    def check_base_url(cls, value: str) -> str:
        value = value.strip()
        try:
            _HTTP_URL.validate_python(value)
        except ValidationError:
            raise ValueError(f"{value!r} is not a valid http(s) URL")
        return value

    @field_validator("sub_dir", mode="before")
    @classmethod
    def normalize_sub_dir(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().strip("/")
        if not value:
            return None
        return "/" + value

    @field_validator("ignore", mode="before")
    @classmethod
    def split_ignore(cls, value):
        return split_patterns(value)
