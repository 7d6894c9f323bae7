"""CLI interface for Docsmith.

Command-line tool for building and serving documentation sites.
"""

import logging
import sys
from pathlib import Path

import click

from docsmith.config import Config
from docsmith.core.build import DEVELOP, PRODUCTION, BuildOrchestrator, BuildResult
from docsmith.errors import BuildFailedError, DocsmithError, Failure


@click.group()
def cli() -> None:
    """Docsmith - documentation site builder."""


def _common_options(func):  # type: ignore[no-untyped-def]
    func = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        help="Enable verbose output (per-file logging)",
    )(func)
    func = click.option(
        "--output-dir",
        "-o",
        type=click.Path(path_type=Path, file_okay=False),
        default=None,
        help="Output directory (overrides config)",
    )(func)
    func = click.option(
        "--source-dir",
        "-s",
        type=click.Path(exists=True, path_type=Path, file_okay=False),
        default=None,
        help="Source directory (overrides config)",
    )(func)
    func = click.option(
        "--config",
        "-c",
        "config_path",
        type=click.Path(exists=True, path_type=Path),
        default=None,
        help="Path to configuration file (default: auto-discover docsmith.toml)",
    )(func)
    return func


@cli.command()
@_common_options
def build(
    config_path: Path | None,
    source_dir: Path | None,
    output_dir: Path | None,
    verbose: bool,
) -> None:
    """Run a full production build."""
    _setup_logging(verbose)
    config = _load_config(config_path, source_dir=source_dir, output_dir=output_dir)

    click.echo(f"Building {config.site.source_dir} -> {config.site.output_dir}")
    try:
        result = BuildOrchestrator(config, PRODUCTION).build()
    except BuildFailedError as e:
        _print_failures(e.failures)
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    except DocsmithError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    _print_summary(result)
    click.echo(click.style("Build complete", fg="green", bold=True))


@cli.command()
@_common_options
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
    "--live-reload/--no-live-reload",
    default=None,
    help="Enable/disable live reload (overrides config, default: enabled)",
)
def develop(
    config_path: Path | None,
    source_dir: Path | None,
    output_dir: Path | None,
    verbose: bool,
    host: str | None,
    port: int | None,
    live_reload: bool | None,
) -> None:
    """Build, serve and rebuild on change."""
    from docsmith.server import run_server

    _setup_logging(verbose)
    config = _load_config(
        config_path,
        source_dir=source_dir,
        output_dir=output_dir,
        host=host,
        port=port,
        live_reload_enabled=live_reload,
    )

    try:
        orchestrator = BuildOrchestrator(config, DEVELOP)
        result = orchestrator.build()
    except DocsmithError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    _print_summary(result)

    click.echo(f"Starting server on {config.server.host}:{config.server.port}")
    click.echo(f"Output directory: {config.site.output_dir}")
    if config.live_reload.enabled:
        click.echo("Live reload: enabled")
    else:
        click.echo("Live reload: disabled")

    run_server(config, orchestrator)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Path | None, **overrides: object) -> Config:
    """Load config and apply CLI overrides, exiting on invalid configuration."""
    try:
        config = Config.load(config_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    for key in ("source_dir", "output_dir"):
        value = overrides.get(key)
        if isinstance(value, Path):
            overrides[key] = value.resolve()
    return config.with_overrides(**overrides)  # type: ignore[arg-type]


def _print_summary(result: BuildResult) -> None:
    click.echo(
        f"Rendered {len(result.rendered)} pages "
        f"({len(result.skipped)} up to date), copied {len(result.copied)} assets",
    )
    if result.failures:
        _print_failures(result.failures)


def _print_failures(failures: list[Failure]) -> None:
    """Print failed pages and files.

    Args:
        failures: List of Failure records
    """
    click.echo(
        click.style(f"\n{len(failures)} failure(s):", fg="yellow", bold=True),
        err=True,
    )
    for failure in failures:
        click.echo(f"  - [{failure.stage}] {failure.path}: {failure.message}", err=True)


if __name__ == "__main__":
    cli()
