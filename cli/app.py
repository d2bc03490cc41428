"""
cli/app.py - inv command line

Commands:
    inv refresh [ACCOUNT_ID|all]   # collect and merge into the store file
    inv check ACCOUNT_ID           # verify an account's credentials
    inv query [filters]            # filtered, paginated listing
    inv summary [filters]          # counts by type / status / region

Usage:
    $ inv refresh --accounts accounts.yaml
    $ inv query -t compute -r us-east-1 --search prod --limit 20
    $ inv summary -a 111111111111 --json
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn

import click

from inventory.auth import ChainCredentialProvider, YamlAccountSource
from inventory.collector import Collector, CollectorConfig
from inventory.config import __version__, settings
from inventory.exceptions import InventoryError, format_error_for_user
from inventory.query import QueryEngine, ResourceFilter
from inventory.service import ALL_ACCOUNTS, InventoryService
from inventory.store import ResourceStore

from cli.ui.console import (
    print_error,
    print_query_result,
    print_refresh_report,
    print_success,
    print_summary,
    setup_logging,
)


def _accounts_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--accounts",
        "accounts_file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=settings.DEFAULT_ACCOUNTS_FILE,
        envvar="INVENTORY_ACCOUNTS_FILE",
        show_default=True,
        help="Accounts YAML file",
    )(func)


def _store_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--store",
        "store_file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=settings.DEFAULT_STORE_FILE,
        envvar="INVENTORY_STORE_FILE",
        show_default=True,
        help="Inventory JSON file",
    )(func)


def _filter_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("-a", "--account", "account_ids", multiple=True, help="Account ID (repeatable)"),
        click.option("-r", "--region", "regions", multiple=True, help="Region (repeatable)"),
        click.option("-t", "--type", "resource_types", multiple=True, help="Resource type (repeatable)"),
        click.option("-s", "--status", "statuses", multiple=True, help="Status (repeatable)"),
        click.option("--search", default=None, help="Substring of name, native id or identifier"),
        click.option("--json", "as_json", is_flag=True, help="JSON output"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_filter(params: dict[str, Any]) -> ResourceFilter:
    raw = {k: list(v) if isinstance(v, tuple) else v for k, v in params.items() if v not in (None, ())}
    return ResourceFilter.from_params(raw)


def _fail(ctx: click.Context, error: Exception) -> NoReturn:
    print_error(format_error_for_user(error))
    ctx.exit(1)


@click.group()
@click.version_option(__version__, prog_name="inv")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """Multi-account cloud resource inventory"""
    setup_logging(verbose)


def _build_service(accounts_file: Path, store: ResourceStore | None = None) -> InventoryService:
    return InventoryService(
        YamlAccountSource(accounts_file),
        Collector(ChainCredentialProvider(), config=CollectorConfig.from_env()),
        store,
    )


@cli.command("refresh")
@click.argument("account_id", default="all")
@_accounts_option
@_store_option
@click.option("--json", "as_json", is_flag=True, help="JSON output")
@click.pass_context
def refresh_command(ctx: click.Context, account_id: str, accounts_file: Path, store_file: Path, as_json: bool) -> None:
    """Collect ACCOUNT_ID (or all active accounts) and merge into the store"""
    target = ALL_ACCOUNTS if account_id in ("all", ALL_ACCOUNTS) else account_id

    try:
        store = ResourceStore.load(store_file)
        report = _build_service(accounts_file, store).refresh(target)
        store.save(store_file)
    except InventoryError as e:
        _fail(ctx, e)

    if as_json:
        click.echo(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        print_refresh_report(report)
        if not report.failed_accounts:
            print_success(f"{report.total_resources} resource(s) saved to {store_file}")

    if report.failed_accounts:
        ctx.exit(1)


@cli.command("check")
@click.argument("account_id")
@_accounts_option
@click.pass_context
def check_command(ctx: click.Context, account_id: str, accounts_file: Path) -> None:
    """Verify ACCOUNT_ID's credentials with STS"""
    try:
        valid = _build_service(accounts_file).check_account(account_id)
    except InventoryError as e:
        _fail(ctx, e)

    if not valid:
        print_error(f"{account_id}: credentials rejected or belong to another account")
        ctx.exit(1)
    print_success(f"{account_id}: credentials OK")


@cli.command("query")
@_store_option
@_filter_options
@click.option("--limit", type=int, default=settings.DEFAULT_QUERY_LIMIT, show_default=True, help="Page size")
@click.option("--offset", type=int, default=0, show_default=True, help="Items to skip")
@click.pass_context
def query_command(ctx: click.Context, store_file: Path, as_json: bool, **params: Any) -> None:
    """List stored resources, most recently updated first"""
    try:
        resource_filter = _build_filter(params)
        result = QueryEngine(ResourceStore.load(store_file)).query(resource_filter)
    except InventoryError as e:
        _fail(ctx, e)

    if as_json:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print_query_result(result)


@cli.command("summary")
@_store_option
@_filter_options
@click.pass_context
def summary_command(ctx: click.Context, store_file: Path, as_json: bool, **params: Any) -> None:
    """Count stored resources by type, status and region"""
    try:
        resource_filter = _build_filter(params)
        summary = QueryEngine(ResourceStore.load(store_file)).summarize(resource_filter)
    except InventoryError as e:
        _fail(ctx, e)

    if as_json:
        click.echo(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    else:
        print_summary(summary)


if __name__ == "__main__":
    cli()
