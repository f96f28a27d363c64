"""Exceptions raised across the runner."""

from __future__ import annotations


class RunnerError(Exception):
    pass


class ConfigError(RunnerError):
    """Fatal configuration problem detected before any audit is scheduled."""


class NoRoutesError(ConfigError):
    def __init__(self, routes_dir: str):
        super().__init__(
            f"No routes found in {routes_dir}. Make sure you're running this "
            "in a SvelteKit project with a routes directory."
        )
        self.routes_dir = routes_dir


class MissingParamsError(ConfigError):
    def __init__(self, missing: list[str], route: str | None = None):
        self.missing = list(missing)
        self.route = route
        names = ", ".join(self.missing)
        where = f' for route "{route}"' if route else ""
        super().__init__(f"Missing required parameter values{where}: {names}")

    @property
    def example(self) -> str:
        pairs = ",".join(f"{name}=value" for name in self.missing)
        return f'--params="{pairs}"'


class LighthouseNotFoundError(ConfigError):
    def __init__(self) -> None:
        super().__init__(
            "Lighthouse is required but not installed. Install it in your "
            "project with `npm install lighthouse` or `yarn add lighthouse`."
        )


class AuditError(RunnerError):
    """A single audit failed; the batch carries on."""
