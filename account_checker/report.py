"""Report sinks — the per-run CSV report and the canonical JSON export.

The CSV keeps full credentials so the latest report can be fed straight
back in as an account list; it is therefore written owner-only and refused
on world-readable targets unless forced.
"""

from __future__ import annotations

import csv
import io
import json
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console

from account_checker.models import AccountResult, BatchSummary, ProbeResult
from account_checker.security import check_output_permissions

LATEST_NAME = "account-check-latest.csv"
BACKUP_NAME = "account-check-backup.csv"
CSV_HEADER = ["name", "url", "key", "primary", "secondary"]


def probe_verdict(result: ProbeResult) -> str:
    if result.ok:
        return "pass"
    return "skipped" if result.status == "skipped" else "fail"


def render_csv(results: list[AccountResult], generated: Optional[datetime] = None) -> str:
    """One row per account, in input order; delimiter-bearing fields are quoted."""
    generated = generated or datetime.now()
    buf = io.StringIO()
    buf.write(f"# generated: {generated:%Y-%m-%d %H:%M:%S}\n")
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for r in results:
        writer.writerow([
            r.account.name, r.account.endpoint, r.account.credential,
            probe_verdict(r.primary), probe_verdict(r.secondary),
        ])
    return buf.getvalue()


def write_csv_report(
    results: list[AccountResult],
    report_dir: Path,
    force_insecure: bool = False,
    console: Optional[Console] = None,
) -> Optional[Path]:
    """Write the latest report, backing up the previous one. Returns the path,
    or None if the target was refused."""
    console = console or Console(stderr=True)
    report_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    latest = report_dir / LATEST_NAME
    if not check_output_permissions(latest, force=force_insecure):
        console.print(
            f"[red]Refusing to write credentials to {latest} — world-readable or a link. "
            f"Use --force-insecure-output to override.[/red]"
        )
        return None
    if latest.exists():
        try:
            shutil.copyfile(latest, report_dir / BACKUP_NAME)
            os.chmod(report_dir / BACKUP_NAME, 0o600)
            console.print(f"[yellow]Previous report backed up to {BACKUP_NAME}[/yellow]")
        except OSError as exc:
            console.print(f"[yellow]Could not back up previous report: {exc}[/yellow]")

    fd = os.open(latest, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
        f.write(render_csv(results))
    console.print(f"[green]Report written to {latest}[/green]")
    return latest


def build_payload(
    results: list[AccountResult],
    summary: BatchSummary,
    redaction_level: str = "prefix",
) -> dict:
    return {
        "summary": summary.to_dict(),
        "results": [r.to_dict(redaction_level) for r in results],
    }


def write_json(
    results: list[AccountResult],
    path: Path,
    summary: BatchSummary,
    force_insecure: bool = False,
    console: Optional[Console] = None,
    redaction_level: str = "prefix",
) -> bool:
    """Write canonical JSON output. Returns True on success."""
    console = console or Console(stderr=True)
    if not check_output_permissions(path, force=force_insecure):
        console.print(
            f"[red]Refusing to write to {path} — world-readable. "
            f"Use --force-insecure-output to override.[/red]"
        )
        return False
    payload = build_payload(results, summary, redaction_level)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    console.print(f"[green]Results written to {path}[/green]")
    return True
