"""
cli/ui/console.py - Rich console output

Tables and status lines for the inv commands.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import replace
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from inventory.collector import RefreshReport
from inventory.config import LogConfig
from inventory.query import QueryResult, Summary

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True)

SYMBOL_SUCCESS = "✓"
SYMBOL_ERROR = "✗"
SYMBOL_WARNING = "!"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging once for a CLI run

    WARNING by default so log lines do not mix into command output;
    LOG_LEVEL or --verbose raise it. RichHandler when stderr is a terminal,
    plain basicConfig otherwise.
    """
    config = LogConfig.from_env()
    level = "DEBUG" if verbose else os.environ.get("LOG_LEVEL", "WARNING").upper()
    config = replace(config, level=level)

    if sys.stderr.isatty():
        logging.basicConfig(
            level=config.level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        )
    config.apply()


def print_success(message: str) -> None:
    console.print(f"[green]{SYMBOL_SUCCESS} {escape(message)}[/green]")


def print_error(message: str) -> None:
    err_console.print(f"[red]{SYMBOL_ERROR} {escape(message)}[/red]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]{SYMBOL_WARNING} {escape(message)}[/yellow]")


def _when(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def print_refresh_report(report: RefreshReport) -> None:
    """Per-account outcome table plus an error tree for failed fetches"""
    table = Table(title="Refresh", show_header=True, header_style="bold magenta")
    table.add_column("Account")
    table.add_column("Status")
    table.add_column("Resources", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Dropped", justify="right")

    for account in report.accounts:
        status = "[green]ok[/green]" if account.success else "[red]failed[/red]"
        table.add_row(
            account.account_id,
            status,
            str(account.resource_count),
            str(len(account.errors)),
            str(len(account.anomalies)),
        )
    console.print(table)

    tree = Tree("[bold yellow]Errors[/bold yellow]")
    for account in report.accounts:
        if account.success and not account.errors:
            continue
        branch = tree.add(f"[red]{account.account_id}[/red]")
        if account.error:
            branch.add(f"[dim]{escape(account.error)}[/dim]")
        for error in account.errors:
            branch.add(f"[dim]{escape(str(error))}[/dim]")
    if tree.children:
        console.print(tree)


def print_query_result(result: QueryResult) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    for column in ("Account", "Region", "Type", "Name", "Status", "Identifier", "Updated"):
        table.add_column(column)

    for r in result.resources:
        table.add_row(
            r.account_id,
            r.region,
            r.resource_type,
            r.name,
            r.status,
            r.identifier,
            _when(r.last_updated),
        )
    console.print(table)

    shown = len(result.resources)
    first = result.offset + 1 if shown else result.offset
    more = " (more available)" if result.has_more else ""
    console.print(f"[dim]{first}-{result.offset + shown} of {result.total}{more}[/dim]")


def print_summary(summary: Summary) -> None:
    console.print(f"[bold]Total:[/bold] {summary.total}")
    for title, groups in (("Type", summary.by_type), ("Status", summary.by_status), ("Region", summary.by_region)):
        table = Table(title=f"By {title.lower()}", show_header=True, header_style="bold magenta")
        table.add_column(title)
        table.add_column("Count", justify="right")
        for group in groups:
            table.add_row(group.key, str(group.count))
        console.print(table)
