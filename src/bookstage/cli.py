"""CLI interface for Bookstage.

Command-line tool for prerendering book pages and serving them.
"""

import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import NoReturn

import click

from bookstage.config import Config
from bookstage.core.errors import DomainError
from bookstage.core.generator import GenerationReport, StaticGenerator
from bookstage.core.routes import ResolvedParams
from bookstage.site import Site


@click.group()
def cli() -> None:
    """Bookstage - prerendered book pages with on-demand fallback."""


def _config_option(func):
    return click.option(
        "--config",
        "-c",
        "config_path",
        type=click.Path(exists=True, path_type=Path),
        default=None,
        help="Path to configuration file (default: auto-discover bookstage.toml)",
    )(func)


def _out_dir_option(func):
    return click.option(
        "--out-dir",
        "-o",
        type=click.Path(path_type=Path, file_okay=False),
        default=None,
        help="Artifact output directory (overrides config)",
    )(func)


def _verbose_option(func):
    return click.option(
        "--verbose",
        "-v",
        is_flag=True,
        help="Enable verbose output (debug logging)",
    )(func)


def _server_error_status_option(func):
    return click.option(
        "--server-error-status",
        type=click.IntRange(min=400, max=599),
        default=None,
        help="HTTP status for failed record lookups (overrides config)",
    )(func)


def _generation_options(func):
    func = click.option(
        "--domain-size",
        type=click.IntRange(min=0),
        default=None,
        help="Repeat catalog ids cyclically up to this many pages (overrides config)",
    )(func)
    return click.option(
        "--concurrency",
        "-j",
        type=click.IntRange(min=1),
        default=None,
        help="Maximum pages rendered at once (overrides config)",
    )(func)


@cli.command()
@_config_option
@_out_dir_option
@_generation_options
@_verbose_option
def generate(
    config_path: Path | None,
    out_dir: Path | None,
    concurrency: int | None,
    domain_size: int | None,
    verbose: bool,
) -> None:
    """Prerender every page into the output directory."""
    _configure_logging(verbose)
    config = _load_config(config_path).with_overrides(
        out_dir=out_dir,
        concurrency=concurrency,
        domain_size=domain_size,
    )
    site = _build_site(config)

    click.echo(f"Output directory: {config.output.out_dir}")
    _run_generation(config, site)


@cli.command()
@_config_option
@_out_dir_option
@_generation_options
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--skip-generate",
    is_flag=True,
    help="Serve existing artifacts without prerendering first",
)
@click.option(
    "--persist/--no-persist",
    "persist_on_demand",
    default=None,
    help="Store successful on-demand renders as artifacts (overrides config)",
)
@_server_error_status_option
@_verbose_option
def serve(
    config_path: Path | None,
    out_dir: Path | None,
    concurrency: int | None,
    domain_size: int | None,
    host: str | None,
    port: int | None,
    skip_generate: bool,
    persist_on_demand: bool | None,
    server_error_status: int | None,
    verbose: bool,
) -> None:
    """Prerender pages, then start the server."""
    from bookstage.server import run_server

    _configure_logging(verbose)
    config = _load_config(config_path).with_overrides(
        host=host,
        port=port,
        out_dir=out_dir,
        concurrency=concurrency,
        domain_size=domain_size,
        persist_on_demand=persist_on_demand,
        server_error_status=server_error_status,
    )
    site = _build_site(config)

    click.echo(f"Output directory: {config.output.out_dir}")
    if skip_generate:
        click.echo("Generation: skipped")
    else:
        _run_generation(config, site)

    click.echo(f"listening on http://{config.server.host}:{config.server.port}")
    run_server(config, site=site)


@cli.command()
@click.argument("book_id")
@_config_option
@_server_error_status_option
@click.option(
    "--placeholder",
    is_flag=True,
    help="Print the loading view shown while the page is pending",
)
@_verbose_option
def render(
    book_id: str,
    config_path: Path | None,
    server_error_status: int | None,
    placeholder: bool,
    verbose: bool,
) -> None:
    """Render one book page on demand and print it without storing it."""
    from bookstage.core.boundary import ErrorBoundary
    from bookstage.core.resource import ResourceCell

    _configure_logging(verbose)
    config = _load_config(config_path).with_overrides(server_error_status=server_error_status)
    site = _build_site(config)
    route = site.routes[0]
    boundary = ErrorBoundary(route, ResourceCell(route.load), policy=site.policy)

    if placeholder:
        click.echo(boundary.placeholder(), nl=False)
        return

    outcome = asyncio.run(boundary.render(ResolvedParams(book_id=book_id)))

    click.echo(f"Status: {outcome.status} ({outcome.state.value})", err=True)
    click.echo(outcome.document, nl=False)
    if not outcome.ok:
        sys.exit(1)


@cli.command()
@_config_option
@_out_dir_option
def clean(config_path: Path | None, out_dir: Path | None) -> None:
    """Remove all generated artifacts."""
    config = _load_config(config_path).with_overrides(out_dir=out_dir)
    site = _build_site(config)
    site.store.clear()
    click.echo(f"Removed {config.output.out_dir}")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Path | None) -> Config:
    """Load configuration or exit with error."""
    try:
        return Config.load(config_path)
    except (OSError, ValueError) as e:
        _fail(f"Error: {e}")


def _build_site(config: Config) -> Site:
    """Build site from configuration or exit with error."""
    try:
        return Site.from_config(config)
    except (OSError, ValueError) as e:
        _fail(f"Error: {e}")


def _run_generation(config: Config, site: Site) -> list[GenerationReport]:
    """Run static generation to completion and report timing.

    Raises:
        SystemExit: If a parameter domain cannot be computed
    """
    generator = StaticGenerator(
        site.store,
        concurrency=config.generate.concurrency,
        policy=site.policy,
        track_paths=False,
    )

    started = time.perf_counter()
    click.echo("Generating pages...")
    try:
        reports = asyncio.run(generator.generate_all(site.routes))
    except DomainError as e:
        _fail(f"Error: {e}")
    elapsed = time.perf_counter() - started

    for report in reports:
        click.echo(f"{report.route}: {report.rendered} rendered, {report.failed} failed")
    click.echo(click.style(f"done, took {elapsed:.0f} secs", fg="green"))
    return reports


def _fail(message: str) -> NoReturn:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)
