"""Parameter presets and the policy for filling in missing values."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from lighthouse_runner.errors import ConfigError, MissingParamsError
from lighthouse_runner.routes import missing_params

logger = logging.getLogger(__name__)

Ask = Callable[[str], Awaitable[str]]
Prompt = Callable[[str], Awaitable[str]]


def parse_param_string(raw: Optional[str]) -> dict[str, str]:
    """Parse ``"slug=hello,id=42"`` into a mapping, rejecting malformed pairs."""
    values: dict[str, str] = {}
    if not raw:
        return values
    for pair in raw.split(","):
        if not pair.strip():
            continue
        key, sep, value = pair.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            raise ConfigError(
                f'Malformed parameter "{pair.strip()}". Expected key=value pairs, '
                'e.g. --params="slug=hello-world,id=42".'
            )
        values[key] = value
        logger.info("Using preset parameter: %s=%s", key, value)
    return values


async def resolve_param_values(
    routes: Sequence[str],
    presets: dict[str, str],
    ask: Ask,
    *,
    route: Optional[str] = None,
) -> dict[str, str]:
    """Return values for every parameter used by ``routes``.

    Supplying any preset means an unattended caller, so missing names are
    fatal. Without presets each missing name is asked for, in order.
    """
    values = dict(presets)
    missing = missing_params(routes, values)
    if not missing:
        if values:
            logger.info("Using %d preset parameter values.", len(values))
        return values

    if presets:
        raise MissingParamsError(missing, route=route)

    logger.info("Found %d parameter(s) without preset values.", len(missing))
    for name in missing:
        values[name] = (await ask(name)).strip()
    logger.info("All parameter values collected.")
    return values


async def console_prompt(text: str) -> str:
    return await asyncio.to_thread(input, text)


def make_ask(prompt: Prompt) -> Ask:
    """Wrap a line prompt into the per-parameter ``ask(name)`` used by the resolver."""

    async def ask(name: str) -> str:
        return await prompt(f"Enter value for {name}: ")

    return ask
