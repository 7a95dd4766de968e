from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from .workflows.bouncer import run_bouncer
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.errors import BouncerError, ConfigError
from .workflows.report import format_report
from .workflows.settings import load_settings

app = typer.Typer(add_help_option=True, no_args_is_help=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


@app.callback()
def main() -> None:
    """Find wiki characters that have not logged in to the MUSH recently."""
    load_dotenv(override=False)


@app.command("run")
def run_cmd(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config JSON (default: $BOUNCER_CONFIG or ~/.bouncer.json)."),
    json_out: bool = typer.Option(False, "--json", help="Print a JSON summary instead of the +request text."),
    soft_fail: bool = typer.Option(False, "--soft-fail", help="Skip character pages that fail to load instead of aborting."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Crawl the wiki, finger every character and print who needs review."""
    _configure_logging(verbose)
    try:
        settings = load_settings(config)
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    try:
        result = run_bouncer(settings, soft_fail=soft_fail)
    except BouncerError as exc:
        typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=3)
    if json_out:
        sys.stdout.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")
        return
    typer.echo(format_report(result.remaining))


@app.command("doctor")
def doctor_cmd(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config JSON to check."),
    json_out: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Validate the configuration without touching the network."""
    report = build_doctor_report(config)
    if json_out:
        sys.stdout.write(json.dumps(report, ensure_ascii=False) + "\n")
    else:
        typer.echo(format_doctor_report(report))
    raise typer.Exit(code=0 if report.get("ok", True) else 2)


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    app()
