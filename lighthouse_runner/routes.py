"""Route discovery for SvelteKit-style file routing, plus filtering and URL helpers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence

from lighthouse_runner.config import (
    DYNAMIC_DELIMITERS,
    GROUP_DELIMITERS,
    HIDDEN_PREFIX,
    PAGE_MARKER,
)
from lighthouse_runner.errors import NoRoutesError

logger = logging.getLogger(__name__)

ROOT_ROUTE = "/"
PARAM_PREFIX = ":"


def _wrapped_in(name: str, delimiters: tuple[str, str]) -> bool:
    opening, closing = delimiters
    return len(name) >= 2 and name.startswith(opening) and name.endswith(closing)


def _child_path(base: str, segment: str) -> str:
    return f"{base.rstrip('/')}/{segment}"


def _walk(directory: Path, base: str, routes: list[str]) -> None:
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        name = entry.name
        if entry.is_symlink():
            continue
        if entry.is_dir():
            if name.startswith(HIDDEN_PREFIX):
                continue
            if _wrapped_in(name, GROUP_DELIMITERS):
                _walk(entry, base, routes)
            elif _wrapped_in(name, DYNAMIC_DELIMITERS):
                _walk(entry, _child_path(base, PARAM_PREFIX + name[1:-1]), routes)
            else:
                _walk(entry, _child_path(base, name), routes)
        elif name == PAGE_MARKER and entry.is_file():
            routes.append(base or ROOT_ROUTE)


def extract_routes(root_dir: Path | str) -> list[str]:
    """Walk a routes directory and return the logical route of every page.

    Hidden and symlinked entries are skipped, ``(group)`` directories add
    no segment and ``[name]`` directories become ``:name``. Entries are
    visited in name order, so the result is stable for a given tree.
    """
    root = Path(root_dir)
    if not root.is_dir():
        logger.warning("Routes directory %s does not exist.", root)
        return []
    routes: list[str] = []
    _walk(root, "", routes)
    return routes


# --- Parameters ---

def _segments(route: str) -> list[str]:
    return route.split("/")


def extract_unique_params(routes: Iterable[str]) -> list[str]:
    """Names of all dynamic segments, in order of first appearance."""
    seen: dict[str, None] = {}
    for route in routes:
        for part in _segments(route):
            if part.startswith(PARAM_PREFIX):
                seen.setdefault(part[1:], None)
    return list(seen)


def apply_param_values(route: str, values: dict[str, str]) -> str:
    """Substitute known parameter values; unknown ``:name`` segments stay as they are."""
    parts = []
    for part in _segments(route):
        if part.startswith(PARAM_PREFIX):
            parts.append(values.get(part[1:]) or part)
        else:
            parts.append(part)
    return "/".join(parts)


def missing_params(routes: Iterable[str], values: dict[str, str]) -> list[str]:
    return [name for name in extract_unique_params(routes) if not values.get(name)]


def has_params(route: str) -> bool:
    return any(part.startswith(PARAM_PREFIX) for part in _segments(route))


# --- Filtering and remapping ---

def compile_ignore_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """``*`` matches any run of characters; everything else is literal and the match is anchored."""
    compiled = []
    for pattern in patterns:
        body = ".*".join(re.escape(piece) for piece in pattern.split("*"))
        compiled.append(re.compile(f"^{body}$"))
    return compiled


def is_ignored(route: str, compiled: Sequence[re.Pattern[str]]) -> bool:
    return any(regex.match(route) for regex in compiled)


def filter_ignored(routes: Sequence[str], patterns: Sequence[str]) -> list[str]:
    if not patterns:
        return list(routes)
    compiled = compile_ignore_patterns(patterns)
    kept = [route for route in routes if not is_ignored(route, compiled)]
    logger.info(
        "Ignored %d routes matching patterns: %s",
        len(routes) - len(kept), ", ".join(patterns),
    )
    return kept


def apply_sub_dir(routes: Sequence[str], sub_dir: Optional[str]) -> list[str]:
    """Rebase routes under ``sub_dir``; the root route maps to ``sub_dir`` itself."""
    if not sub_dir:
        return list(routes)
    prefix = "/" + sub_dir.strip("/")
    return [prefix if route == ROOT_ROUTE else _child_path(prefix, route.lstrip("/")) for route in routes]


def join_url(base_url: str, path: str) -> str:
    """Join a base URL and a route with exactly one slash between them."""
    clean_base = base_url[:-1] if base_url.endswith("/") else base_url
    clean_path = path if path.startswith("/") else f"/{path}"
    return f"{clean_base}{clean_path}"


@dataclass
class RouteSet:
    """Parallel route lists: ``display`` for the user, ``execution`` for building URLs."""

    display: list[str] = field(default_factory=list)
    execution: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.execution)


def build_route_set(
    routes_dir: Path | str,
    sub_dir: Optional[str] = None,
    ignore: Sequence[str] = (),
) -> RouteSet:
    scan_dir = Path(routes_dir)
    if sub_dir:
        scan_dir = scan_dir / sub_dir.strip("/")

    routes = extract_routes(scan_dir)
    if not routes:
        raise NoRoutesError(str(scan_dir))

    routes = filter_ignored(routes, ignore)
    route_set = RouteSet(display=list(routes), execution=apply_sub_dir(routes, sub_dir))
    logger.info("Found %d routes in the project.", len(route_set))
    return route_set
