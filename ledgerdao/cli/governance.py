#!/usr/bin/env python3
"""
LedgerDAO Governance CLI

Command-line interface for inspecting configuration and replaying
governance scenarios offline.

Usage:
    ledgerdao config [--config FILE]
    ledgerdao simulate <scenario.json> [--config FILE] [--strict] [--log-level LEVEL]
"""

import json
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from ..config import load_config
from ..exceptions import LedgerDAOException
from ..logger import configure_logging
from ..simulation import ScenarioError, ScenarioRunner


def _load_config_or_fail(config_file: Optional[str]):
    try:
        return load_config(config_file)
    except LedgerDAOException as e:
        raise click.ClickException(f"Invalid configuration: {e}")


@click.group()
@click.version_option(version=__version__, prog_name="ledgerdao")
def cli():
    """LedgerDAO Command Line Interface

    Inspect governance configuration and replay proposal scenarios.
    """
    pass


@cli.command("config")
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(),
    help="Path to ledgerdao.toml (default: $LEDGERDAO_CONFIG or ./ledgerdao.toml)"
)
def config_cmd(config_file: Optional[str]):
    """Print the resolved configuration as JSON.

    Examples:

        ledgerdao config

        ledgerdao config --config deploy/ledgerdao.toml
    """
    cfg = _load_config_or_fail(config_file)
    click.echo(json.dumps(cfg.to_dict(), indent=2))


@cli.command("simulate")
@click.argument("scenario_file", type=click.Path(exists=True))
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(),
    help="Path to ledgerdao.toml"
)
@click.option("--strict", is_flag=True, help="Exit with status 1 if any step fails")
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level"
)
def simulate_cmd(scenario_file: str, config_file: Optional[str], strict: bool,
                 log_level: Optional[str]):
    """Replay a governance scenario and print the outcome as JSON.

    Examples:

        ledgerdao simulate examples/funding_scenario.json

        ledgerdao simulate scenario.json --strict --log-level DEBUG
    """
    cfg = _load_config_or_fail(config_file)
    configure_logging(
        log_level=log_level or cfg.logging.level,
        log_file=Path(cfg.logging.file) if cfg.logging.file else None,
        console_output=cfg.logging.console_output,
        file_output=bool(cfg.logging.file),
    )

    try:
        scenario = json.loads(Path(scenario_file).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid scenario JSON: {e}")

    runner = ScenarioRunner(scenario, cfg)
    try:
        report = runner.run()
    except ScenarioError as e:
        raise click.ClickException(f"Invalid scenario: {e}")
    except LedgerDAOException as e:
        raise click.ClickException(f"Scenario setup failed: {type(e).__name__}: {e}")

    click.echo(json.dumps(report, indent=2))

    failed = runner.failed_steps
    if failed:
        click.echo(
            click.style(f"{len(failed)} step(s) failed", fg="yellow"),
            err=True,
        )
        if strict:
            raise SystemExit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
