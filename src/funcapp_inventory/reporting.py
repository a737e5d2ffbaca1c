"""Rich console reporting and JSON export for scan results."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .aggregator import ScanResults
from .models import NOT_AVAILABLE, RuntimeStack

logger = logging.getLogger(__name__)
console = Console()

_STACK_STYLES = {
    RuntimeStack.DOTNET: "magenta",
    RuntimeStack.DOTNET_ISOLATED: "magenta",
    RuntimeStack.PYTHON: "yellow",
    RuntimeStack.NODE: "green",
    RuntimeStack.JAVA: "red",
    RuntimeStack.POWERSHELL: "blue",
    RuntimeStack.UNKNOWN: "dim",
}


# ---------------------------------------------------------------------------
# Summary banner
# ---------------------------------------------------------------------------

def print_scan_summary(results: ScanResults) -> None:
    """Print totals, runtime breakdown and version detection rate."""
    summary = results.summary()
    runtimes = "    ".join(
        f"[bold]{stack}:[/] {count}" for stack, count in sorted(summary.by_runtime.items())
    ) or "—"
    host_versions = "    ".join(
        f"[bold]{escape(version)}:[/] {count}" for version, count in sorted(summary.by_extension_version.items())
    ) or "—"

    text = (
        f"[bold cyan]Function Apps:[/] {summary.total}\n"
        f"[bold]By runtime:[/] {runtimes}\n"
        f"[bold]By host version:[/] {host_versions}\n"
        f"\n"
        f"[bold]Version detected:[/] {summary.versions_detected}/{summary.total} "
        f"({summary.detection_success_rate:.0%})"
    )
    console.print(Panel(text, title="[bold green]Scan Summary", border_style="green"))


# ---------------------------------------------------------------------------
# Results table
# ---------------------------------------------------------------------------

def print_results_table(results: ScanResults) -> None:
    """Print one row per Function App in discovery order."""
    table = Table(title="Function App Runtimes", show_lines=True)
    table.add_column("Name", style="bold", max_width=30)
    table.add_column("Resource Group", max_width=25)
    table.add_column("Location")
    table.add_column("Runtime")
    table.add_column("Version")
    table.add_column("Hosting")
    table.add_column("Host")
    table.add_column("Bundle (est.)", max_width=40)
    table.add_column("Bundle Range (est.)")

    for r in results:
        style = _STACK_STYLES.get(r.runtime_stack, "white")
        version = escape(r.runtime_version_display)
        if r.runtime_version_display == NOT_AVAILABLE:
            version = f"[dim]{version}[/]"
        table.add_row(
            escape(r.name),
            escape(r.resource_group),
            escape(r.location),
            f"[{style}]{r.runtime_stack.value}[/]",
            version,
            r.hosting_model.value,
            escape(r.functions_extension_version or "—"),
            escape(r.extension_bundle.bundle_id),
            escape(r.extension_bundle.version_range),
        )

    console.print(table)
    console.print("[dim]Extension bundle values are estimates; host.json is not exposed by the resource API.[/]")


def print_failures(failures: list[str]) -> None:
    """Print the non-fatal failures collected during discovery."""
    if not failures:
        return
    console.print("\n[bold yellow]Non-fatal discovery failures:[/]")
    for message in failures:
        console.print(f"  • {escape(message)}")


# ---------------------------------------------------------------------------
# Export to JSON
# ---------------------------------------------------------------------------

def export_results_json(results: ScanResults, output_path: Path) -> None:
    """Write the summary and every result row to ``output_path``."""
    report = {
        "summary": asdict(results.summary()),
        "function_apps": [r.to_dict() for r in results],
    }
    output_path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
    logger.info("Report exported to %s", output_path)
    console.print(f"\n[bold]Report exported to:[/] {escape(str(output_path))}")
