"""Console rendering — results table, summary, failure groups, speed ranking."""

from __future__ import annotations

from collections import defaultdict
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from account_checker.models import AccountResult, BatchSummary, ProbeResult
from account_checker.security import RedactionLevel, mask_credential

_OVERALL_STYLES = {
    "both_succeeded": "green",
    "primary_only": "yellow",
    "both_failed": "red bold",
}

_PROBE_STYLES = {
    "success": "green",
    "failed": "red",
    "skipped": "dim",
}


def _probe_cell(r: ProbeResult) -> Text:
    style = _PROBE_STYLES.get(r.status, "white")
    if r.ok:
        return Text(f"{r.status} · {r.speed_tier} ({r.elapsed_ms}ms)", style=style)
    return Text(f"{r.status} · {r.error_kind}", style=style)


def render_table(
    results: list[AccountResult],
    console: Optional[Console] = None,
    redaction_level: str = "prefix",
) -> None:
    console = console or Console()
    level = RedactionLevel(redaction_level)
    table = Table(title="Account Check Results", show_lines=True)
    table.add_column("Account", style="cyan")
    table.add_column("Endpoint")
    table.add_column("Credential")
    table.add_column(results[0].primary.model_id if results else "Primary")
    table.add_column(results[0].secondary.model_id if results else "Secondary")
    table.add_column("Overall")

    for r in results:
        style = _OVERALL_STYLES.get(r.overall_status, "white")
        table.add_row(
            r.account.name,
            r.account.endpoint,
            Text(mask_credential(r.account.credential, level)),
            _probe_cell(r.primary),
            _probe_cell(r.secondary),
            Text(r.overall_status, style=style),
        )
    console.print(table)


def render_summary(results: list[AccountResult], summary: BatchSummary, console: Optional[Console] = None) -> None:
    console = console or Console()
    console.print()
    console.print(f"  [bold]Summary:[/bold] {summary.total} accounts")
    console.print(f"    [green]both models[/green]: {summary.both_succeeded} ({summary.percent(summary.both_succeeded)}%)")
    console.print(f"    [yellow]primary only[/yellow]: {summary.primary_only} ({summary.percent(summary.primary_only)}%)")
    console.print(f"    [red]both failed[/red]: {summary.both_failed} ({summary.percent(summary.both_failed)}%)")

    if results:
        primary_id = results[0].primary.model_id
        secondary_id = results[0].secondary.model_id
        console.print(f"  [bold]Per model:[/bold] {primary_id} {summary.primary_success}/{summary.total} · "
                      f"{secondary_id} {summary.secondary_success}/{summary.total}")

    groups = group_failures(results)
    if groups:
        console.print("  [bold]Failures by kind:[/bold]")
        for kind, names in groups.items():
            console.print(f"    [yellow]{kind}[/yellow] ({len(names)}): {', '.join(names)}")

    ranked = rank_by_speed(results)
    if ranked:
        console.print("  [bold]Fastest accounts (both models):[/bold]")
        for i, r in enumerate(ranked, 1):
            console.print(f"    {i}. {r.account.name}: {r.total_elapsed_ms}ms "
                          f"({r.primary.elapsed_ms}ms + {r.secondary.elapsed_ms}ms)")
    console.print()


def group_failures(results: list[AccountResult]) -> dict[str, list[str]]:
    """Fully failed accounts grouped by their primary error kind."""
    groups: dict[str, list[str]] = defaultdict(list)
    for r in results:
        if r.overall_status == "both_failed":
            groups[r.primary.error_kind or "unknown"].append(r.account.name)
    return dict(groups)


def rank_by_speed(results: list[AccountResult], top: int = 5) -> list[AccountResult]:
    both = [r for r in results if r.overall_status == "both_succeeded"]
    return sorted(both, key=lambda r: r.total_elapsed_ms)[:top]
