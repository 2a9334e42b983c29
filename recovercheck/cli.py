"""Typer-based CLI for recovercheck."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config_manager import load_settings
from .driver import Driver
from .reporter import ConsoleReporter, JsonReporter

app = typer.Typer(
    help="Checks that goroutines have panic recovery logic.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


class OutputFormat(str, Enum):
    text = "text"
    json = "json"


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"recovercheck v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """recovercheck: find goroutines that can crash the whole program."""
    pass


@app.command("check")
def check(
    paths: List[Path] = typer.Argument(..., exists=True, help="Go files or directories to analyze."),
    skip_test_files: Optional[bool] = typer.Option(
        None, "--skip-test-files/--include-test-files", help="Skip analysis of *_test.go files.",
    ),
    errgroup: Optional[bool] = typer.Option(
        None, "--errgroup/--no-errgroup", help="Also check errgroup-style g.Go(fn) launches.",
    ),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Packages analyzed in parallel."),
    output_format: OutputFormat = typer.Option(OutputFormat.text, "--format", "-f", help="Output format."),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="Explicit configuration file.",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """Report goroutines created without panic recovery."""
    _configure_logging(verbose)

    first = paths[0].resolve()
    root = first if first.is_dir() else first.parent
    settings = load_settings(root, config_file).merged(
        skip_test_files=skip_test_files, check_errgroup=errgroup, jobs=jobs,
    )
    driver = Driver(settings, root=root)

    if output_format is OutputFormat.json:
        json_reporter = JsonReporter()
        driver.run(paths, json_reporter)
        typer.echo(json_reporter.render())
        found = json_reporter.count
    else:
        reporter = ConsoleReporter()
        summary = driver.run(paths, reporter)
        reporter.summary(summary.files)
        found = reporter.count

    if found:
        raise typer.Exit(code=1)
