"""Main orchestrator — ties discovery, classification and reporting together."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler
from rich.panel import Panel

from .aggregator import analyze_records
from .config import STRATEGIES, load_config
from .discovery import ScanScope, create_fetcher, fetch_function_apps
from .errors import ConfigError, DiscoveryError
from .reporting import (
    console,
    export_results_json,
    print_failures,
    print_results_table,
    print_scan_summary,
)

logger = logging.getLogger("funcapp_inventory")


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
    )
    # The Azure SDK logs every HTTP request at INFO.
    logging.getLogger("azure").setLevel(logging.WARNING)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="funcapp-inventory",
        description="Report runtime stack, runtime version and extension bundle estimates for Azure Function Apps.",
    )
    parser.add_argument(
        "-s", "--subscription",
        action="append",
        default=[],
        help="Subscription ID to scan (repeatable). Defaults to AZURE_SUBSCRIPTION_IDS.",
    )
    parser.add_argument(
        "-g", "--resource-group",
        action="append",
        default=[],
        help="Limit the scan to this resource group (repeatable).",
    )
    parser.add_argument(
        "--strategy",
        choices=STRATEGIES,
        default=None,
        help="Discovery strategy (default: FUNCAPP_DISCOVERY_STRATEGY or 'auto').",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Subscriptions scanned in parallel (default: FUNCAPP_MAX_WORKERS or 4).",
    )
    parser.add_argument(
        "--export",
        type=str,
        default=None,
        help="Write the results to this JSON file.",
    )
    parser.add_argument(
        "--no-table",
        action="store_true",
        help="Only print the summary, not the per-app table.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    console.print(Panel(
        "[bold blue]Function App Runtime Inventory[/]\n"
        "Classify runtime stacks and versions of Azure Function Apps",
        border_style="blue",
    ))

    # ── Load configuration ──────────────────────────────────────────────
    try:
        cfg = load_config()
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/] {e}")
        return 1

    subscriptions = args.subscription or cfg.azure.subscription_ids
    if not subscriptions:
        console.print("[bold red]Error:[/] No subscription configured. Use --subscription or AZURE_SUBSCRIPTION_IDS.")
        return 1
    if args.max_workers is not None and args.max_workers < 1:
        console.print("[bold red]Error:[/] --max-workers must be at least 1.")
        return 1

    scope = ScanScope(
        subscription_ids=subscriptions,
        resource_groups=args.resource_group or cfg.azure.resource_groups,
    )
    strategy = args.strategy or cfg.discovery.strategy
    max_workers = args.max_workers or cfg.discovery.max_workers

    # ── Step 1: Discover Function Apps ──────────────────────────────────
    console.print(f"\n[bold]Step 1:[/] Discovering Function Apps ({strategy}) …\n")
    fetcher = create_fetcher(strategy, max_retries=cfg.discovery.max_retries)
    try:
        records = fetch_function_apps(scope, fetcher, max_workers=max_workers)
    except DiscoveryError as e:
        console.print(f"[bold red]Discovery failed:[/] {e}")
        logger.debug("Discovery error", exc_info=True)
        print_failures(fetcher.failed_operations)
        return 1

    # ── Step 2: Classify ────────────────────────────────────────────────
    console.print(f"\n[bold]Step 2:[/] Classifying {len(records)} Function App(s) …\n")
    results = analyze_records(records)

    # ── Step 3: Report ──────────────────────────────────────────────────
    print_scan_summary(results)
    if results and not args.no_table:
        console.print()
        print_results_table(results)
    print_failures(fetcher.failed_operations)

    if args.export:
        export_results_json(results, Path(args.export))

    console.print("\n[bold green]Done![/]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
