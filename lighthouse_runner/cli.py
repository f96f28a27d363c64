"""Command line entry point: ``lighthouse-runner``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
import webbrowser
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from pydantic import ValidationError

from lighthouse_runner.artifacts import lookup_result
from lighthouse_runner.audit import LighthouseInvoker
from lighthouse_runner.browser import BrowserSession, load_auth_config
from lighthouse_runner.config import DEFAULT_BASE_URL
from lighthouse_runner.context import RunContext
from lighthouse_runner.errors import AuditError, ConfigError, MissingParamsError
from lighthouse_runner.fetcher import check_server
from lighthouse_runner.index import write_index
from lighthouse_runner.models import AuditResult, RunOptions
from lighthouse_runner.params import (
    Prompt,
    console_prompt,
    make_ask,
    parse_param_string,
    resolve_param_values,
)
from lighthouse_runner.report import generate_pdf
from lighthouse_runner.routes import (
    RouteSet,
    apply_param_values,
    build_route_set,
    has_params,
    join_url,
)
from lighthouse_runner.scheduler import Invoke, run_batch

logger = logging.getLogger(__name__)

__version__ = "1.1.0"

InvokerFactory = Callable[[RunContext, RunOptions, Optional[int]], Invoke]


def lighthouse_invoker(context: RunContext, options: RunOptions, port: Optional[int]) -> Invoke:
    return LighthouseInvoker(
        context, quiet=options.quiet, config_path=options.config_path, port=port,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lighthouse-runner",
        description="Run Lighthouse audits on a SvelteKit application",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-a", "--all", dest="run_all", action="store_true", help="Run on all routes")
    parser.add_argument("-d", "--dir", dest="sub_dir", help="Only routes in specified directory (e.g., /settings)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress detailed Lighthouse output")
    parser.add_argument("-v", "--view", action="store_true", help="Open report in browser when completed")
    parser.add_argument("-u", "--url", dest="base_url", default=DEFAULT_BASE_URL, help="Base URL for audits")
    parser.add_argument(
        "-p", "--params",
        help='Parameter values in format "param1=value1,param2=value2" for CI environments',
    )
    parser.add_argument("-c", "--config", dest="config_path", help="Custom path to lighthouse config file")
    parser.add_argument("-i", "--ignore", help="Ignore routes matching these patterns (comma-separated)")
    parser.add_argument("--auth", dest="auth_path", help="Path to authentication JSON config file")
    parser.add_argument("-j", "--concurrency", type=int, help="Parallel audits (default: CPU count - 1)")
    parser.add_argument("--routes-dir", help="Routes directory (default: ./src/routes)")
    parser.add_argument("--reports-dir", help="Output directory (default: ./lighthouse-reports)")
    parser.add_argument("--pdf", action="store_true", help="Also write a PDF score summary")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def build_options(args: argparse.Namespace) -> RunOptions:
    fields = {
        "run_all": args.run_all,
        "sub_dir": args.sub_dir,
        "quiet": args.quiet,
        "view": args.view,
        "base_url": args.base_url,
        "params": parse_param_string(args.params),
        "config_path": args.config_path,
        "ignore": args.ignore,
        "auth_path": args.auth_path,
        "concurrency": args.concurrency,
        "pdf": args.pdf,
    }
    if args.routes_dir:
        fields["routes_dir"] = args.routes_dir
    if args.reports_dir:
        fields["reports_dir"] = args.reports_dir
    try:
        return RunOptions(**fields)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid options: {problems}") from exc


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(levelname)s %(message)s",
        stream=sys.stderr,
    )


@contextlib.asynccontextmanager
async def shared_browser(options: RunOptions) -> AsyncIterator[Optional[int]]:
    """Yield the debugging port of an authenticated browser, or None when no auth is configured."""
    auth = load_auth_config(options.auth_path)
    if auth is None:
        yield None
        return
    async with BrowserSession(auth) as session:
        yield session.port


def finish_reports(reports: Sequence[AuditResult], context: RunContext, options: RunOptions) -> Path:
    index_path = write_index(reports, context, options.base_url, options.sub_dir)
    if options.pdf:
        context.summary_pdf_path.write_bytes(generate_pdf(reports, options.base_url, options.sub_dir))
        logger.info("PDF summary written to %s", context.summary_pdf_path)
    if options.view:
        logger.info("Opening report index in browser...")
        webbrowser.open(index_path.resolve().as_uri())
    return index_path


async def run_all_routes(
    options: RunOptions,
    route_set: RouteSet,
    prompt: Prompt,
    invoker_factory: InvokerFactory,
) -> int:
    values = await resolve_param_values(route_set.execution, options.params, make_ask(prompt))
    await asyncio.to_thread(check_server, options.base_url)

    context = RunContext(options.reports_dir)
    async with shared_browser(options) as port:
        concurrency = options.concurrency
        if port is not None and concurrency != 1:
            logger.info("Authenticated session in use, running audits one at a time.")
            concurrency = 1
        reports = await run_batch(
            route_set.execution,
            values,
            invoker_factory(context, options, port),
            base_url=options.base_url,
            context=context,
            concurrency=concurrency,
        )

    if reports:
        finish_reports(reports, context, options)
    else:
        logger.error("No reports were found in the output directory.")
    return 0


async def run_single_route(
    options: RunOptions,
    route_set: RouteSet,
    prompt: Prompt,
    invoker_factory: InvokerFactory,
) -> int:
    print("Available routes:")
    for number, route in enumerate(route_set.display, start=1):
        print(f"{number}. {route}")

    try:
        answer = (await prompt('Select a route number to audit (or "q" to quit): ')).strip()
    except EOFError:
        return 0
    if answer.lower() == "q":
        return 0

    try:
        index = int(answer) - 1
    except ValueError:
        index = -1
    if not 0 <= index < len(route_set):
        logger.error("Invalid route number.")
        return 0

    route = route_set.execution[index]
    if has_params(route):
        values = await resolve_param_values([route], options.params, make_ask(prompt), route=route)
        route = apply_param_values(route, values)
    url = join_url(options.base_url, route)

    context = RunContext(options.reports_dir)
    try:
        async with shared_browser(options) as port:
            invoke = invoker_factory(context, options, port)
            result = await invoke(url, route)
    except (AuditError, OSError) as exc:
        logger.error("Lighthouse audit failed for %s: %s", url, exc)
        return 1

    result = result or lookup_result(context, route, options.base_url)
    if result is None:
        logger.error("Lighthouse audit failed for %s: no report was written.", url)
        return 1

    finish_reports([result], context, options)
    return 0


async def run(
    options: RunOptions,
    prompt: Prompt = console_prompt,
    invoker_factory: InvokerFactory = lighthouse_invoker,
) -> int:
    route_set = build_route_set(options.routes_dir, options.sub_dir, options.ignore)
    if options.run_all:
        return await run_all_routes(options, route_set, prompt, invoker_factory)
    return await run_single_route(options, route_set, prompt, invoker_factory)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)
    try:
        options = build_options(args)
        return asyncio.run(run(options))
    except MissingParamsError as exc:
        logger.error("Error: %s", exc)
        logger.error("Please provide values for all parameters using --params option.")
        logger.error("Example: %s", exc.example)
        return 1
    except ConfigError as exc:
        logger.error("Error running lighthouse audits: %s", exc)
        return 1
    except PlaywrightError as exc:
        logger.error("Browser session failed: %s", exc)
        return 1
    except (KeyboardInterrupt, EOFError):
        logger.warning("Interrupted.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
