#!/usr/bin/env python3
"""
Deploy Info CLI

Prints deploy metadata for a Git repository:
- Version from package.json and load/build information
- Deploy count, deploy status and last successful deploy
- Last commit details and latest tag

Usage:
    python report_deploy.py [OPTIONS]

Examples:
    python report_deploy.py                            # Box report for the current directory
    python report_deploy.py --repo-path /path/to/repo  # Report for another repository
    python report_deploy.py --format table             # Rich table output
    python report_deploy.py --format json              # Machine-readable output
    python report_deploy.py --pattern "release v\\d+"  # Custom deploy pattern
"""

import json
import logging
import re
import sys
from pathlib import Path
from typing import Optional, Dict, Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config.settings import GitSettings, Settings, get_settings
from services.deploy_info.main import DeployInfoService

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    "success": "bold green",
    "failed": "bold red",
    "unknown": "yellow",
}


class DeployReportCLI:
    """CLI interface for deploy info reports."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_report(self, report: str):
        """Display the box-drawn report without markup interpretation."""
        self.console.print(Text(report))

    def display_json(self, record: Dict[str, Any]):
        click.echo(json.dumps(record, indent=2))

    def display_table(self, record: Dict[str, Any]):
        """Display deploy info in a rich table."""
        deployment = record["deployment"]
        commit = record["git"]["commit"]

        table = Table(title="Deploy Info", show_header=True, header_style="bold magenta")
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")

        table.add_row("Version", record["version"])
        table.add_row("Build", record["buildLabel"])
        table.add_row("Deploy Time", record["deployTime"])
        table.add_row("Deploy Count", str(record["deployCount"]))
        table.add_row("Commit Count", str(record["commitCount"]))

        status = deployment["status"]
        table.add_row("Status", Text(status, style=STATUS_STYLES.get(status, "white")))
        if not deployment["historyAvailable"]:
            table.add_row("History", Text("unavailable", style="yellow"))

        last_success = deployment["lastSuccess"]
        if last_success:
            table.add_row("Last Success", f"{last_success['hash'][:8]} {last_success['date']}")
        else:
            table.add_row("Last Success", "none")

        table.add_row("Hash", commit["hash"])
        table.add_row("Branch", commit["branch"])
        table.add_row("Author", f"{commit['author']['name']} <{commit['author']['email']}>")
        table.add_row("Date", str(commit["date"]))

        message = commit["message"]
        if len(message) > 100:
            message = message[:100] + "..."
        table.add_row("Message", message)
        table.add_row("Latest Tag", record["git"]["latestTag"])

        self.console.print(table)

    def display_error_message(self, error: str, suggestion: str = ""):
        """Display error message with helpful suggestions."""
        error_text = Text()
        error_text.append("Error: ", style="red")
        error_text.append(f"{error}\n", style="white")

        if suggestion:
            error_text.append("Suggestion: ", style="yellow")
            error_text.append(suggestion, style="white")

        panel = Panel(error_text, title="Error", border_style="red")
        self.console.print(panel)


def build_settings(base: Settings, repo_path: Path, timeout: Optional[float]) -> Settings:
    """Settings with the repository path and timeout taken from the command line."""
    git = GitSettings(
        repo_path=str(repo_path),
        command_timeout=timeout if timeout is not None else base.git.command_timeout,
    )
    return base.model_copy(update={"git": git})


@click.command()
@click.option(
    '--repo-path',
    default='.',
    help='Path to Git repository (default: current directory)',
    type=click.Path(exists=True, file_okay=False, dir_okay=True)
)
@click.option(
    '--pattern',
    help='Regular expression marking deploy commits (case-insensitive)'
)
@click.option(
    '--format', 'output_format',
    default='box',
    type=click.Choice(['box', 'table', 'json']),
    help='Output format'
)
@click.option(
    '--timeout',
    type=click.FloatRange(min=0, min_open=True),
    help='Seconds before a git command is abandoned'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose output'
)
def report_deploy(
    repo_path: str,
    pattern: Optional[str],
    output_format: str,
    timeout: Optional[float],
    verbose: bool
):
    """Show deploy metadata for a Git repository."""
    cli = DeployReportCLI()

    try:
        settings = get_settings()
    except ValidationError as e:
        cli.display_error_message(
            f"Invalid configuration: {e.errors()[0]['msg']}",
            "Check the deploy info environment variables (DEPLOY_SUCCESS_PATTERN, GIT_COMMAND_TIMEOUT, ...)"
        )
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.monitoring.log_level),
        format=settings.monitoring.log_format
    )

    settings = build_settings(settings, Path(repo_path).resolve(), timeout)

    try:
        service = DeployInfoService(settings=settings, pattern=pattern)
    except re.error as e:
        cli.display_error_message(
            f"Invalid deploy pattern {pattern!r}: {e}",
            "Patterns are Python regular expressions, e.g. 'deploy success|released'"
        )
        sys.exit(1)

    if not service.facade.is_available():
        logger.warning(f"No readable git history at {settings.git.repo_path}")

    if output_format == 'json':
        cli.display_json(service.to_dict())
    elif output_format == 'table':
        cli.display_table(service.to_dict())
    else:
        cli.display_report(service.render())


if __name__ == "__main__":
    report_deploy()
