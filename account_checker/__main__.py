"""CLI entry point — python -m account_checker.

Usage:
    python -m account_checker accounts.csv
    python -m account_checker accounts.csv --parallel 2 --timeout 60000
    python -m account_checker accounts.json --tool "claude" --base-url-var ANTHROPIC_BASE_URL \\
        --key-var ANTHROPIC_API_KEY
    python -m account_checker accounts.txt --webhook URL --webhook-secret SECRET --at-all
    python -m account_checker --self-test
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from account_checker.config import ConfigError, RunConfig, load_config


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="account_checker",
        description="Batch account checker — runs an external CLI tool per account and model, "
                    "reports which accounts work.",
    )
    p.add_argument("accounts_file", nargs="?", type=Path, help="Account list (.csv, .json or .txt)")
    p.add_argument("--timeout", type=int, help="Per-probe timeout in ms (default: 45000)")
    p.add_argument("--parallel", type=int, help="Accounts checked at once (default: 1)")
    p.add_argument("--primary-model", help="Model tested first")
    p.add_argument("--secondary-model", help="Model tested only if the primary one passes")
    p.add_argument("--prompt", help="Prompt sent to the tool on stdin")
    p.add_argument("--tool", help="Tool command line (default: claude)")
    p.add_argument("--base-url-var", help="Env var carrying the endpoint (default: API_BASE_URL)")
    p.add_argument("--key-var", help="Env var carrying the credential (default: API_KEY)")
    p.add_argument("--warmup", type=float, help="Seconds to wait before sending the prompt (default: 1.0)")
    p.add_argument("--report-dir", type=Path, help="Directory for the CSV report and run log")
    p.add_argument("--output", type=Path, help="Write JSON results to file")
    p.add_argument("--json", action="store_true", help="Print JSON results to stdout")
    p.add_argument("--quiet", "-q", action="store_true", help="Suppress console output, only exit code")
    p.add_argument("--verbose", "-v", action="store_true", help="Show per-probe progress")
    p.add_argument("--env", type=Path, help="Optional .env file with DINGTALK_WEBHOOK etc.")
    p.add_argument("--webhook", help="Notification webhook URL")
    p.add_argument("--webhook-secret", help="Webhook signing secret")
    p.add_argument("--at-all", action="store_true", help="Mention everyone when an account fully fails")
    p.add_argument("--notify-always", action="store_true", help="Notify even when every account passes")
    p.add_argument("--no-notify", action="store_true", help="Never send a notification")
    p.add_argument("--redaction-level", choices=["prefix", "full", "hash"], default="prefix",
                   help="Credential redaction in console/JSON output (default: prefix)")
    p.add_argument("--force-insecure-output", action="store_true", help="Skip file permission check")
    p.add_argument("--dry-run", action="store_true", help="List the accounts that would be checked")
    p.add_argument("--self-test", action="store_true", help="Run invariant self-test suite")
    p.add_argument("--version", action="store_true", help="Show version and exit")
    return p


def _print_dry_run(config: RunConfig, accounts: list, console: Console) -> None:
    from account_checker.security import RedactionLevel, mask_credential

    t = Table(title="Dry Run — Accounts to Check", show_lines=True)
    t.add_column("Account", style="cyan")
    t.add_column("Endpoint")
    t.add_column("Credential")
    level = RedactionLevel(config.redaction_level)
    for a in accounts:
        t.add_row(a.name, a.endpoint, mask_credential(a.credential, level))
    console.print(t)
    console.print(
        f"\n[bold]{len(accounts)}[/bold] accounts · {' '.join(config.tool_command)} · "
        f"{config.primary_model} → {config.secondary_model} · "
        f"timeout {config.timeout_ms}ms · parallel {config.parallel}"
    )


def run(
    config: RunConfig,
    args: argparse.Namespace,
    console: Console,
    status: Console,
    progress: Console,
) -> int:
    """Check every account; returns the process exit status."""
    from account_checker.audit_log import AuditLog
    from account_checker.loader import load_accounts
    from account_checker.models import BatchSummary
    from account_checker.notify import notify
    from account_checker.output import render_summary, render_table
    from account_checker.report import build_payload, write_csv_report, write_json
    from account_checker.security import suppress_credential_logging
    from account_checker.validator import AccountValidator

    accounts = load_accounts(config.accounts_file)

    if args.dry_run:
        _print_dry_run(config, accounts, console)
        return 0

    suppress_credential_logging()
    alog = AuditLog(config.log_path)
    alog.log("run_start", detail=f"{config.accounts_file} ({len(accounts)} accounts, parallel {config.parallel})")

    status.print(
        f"[bold]Checking {len(accounts)} accounts[/bold] · {config.primary_model} → "
        f"{config.secondary_model} · parallel {config.parallel}"
    )
    validator = AccountValidator(
        config.make_probe(), config.primary_model, config.secondary_model,
        console=progress, audit_log=alog,
    )
    results = asyncio.run(validator.run_batch(accounts, config.parallel))
    summary = BatchSummary.from_results(results)

    if not args.quiet and not args.json:
        render_table(results, console, config.redaction_level)
        render_summary(results, summary, console)

    exit_code = 1 if summary.both_failed else 0

    if write_csv_report(results, config.report_dir, config.force_insecure_output, status) is None:
        exit_code = 2

    if args.json:
        print(json.dumps(build_payload(results, summary, config.redaction_level), indent=2, ensure_ascii=False))

    if args.output:
        if not write_json(results, args.output, summary, config.force_insecure_output,
                          status, config.redaction_level):
            exit_code = 2

    if config.notify:
        asyncio.run(notify(
            results, summary, config.webhook_url, config.webhook_secret,
            always=config.notify_always, at_all=config.at_all,
            primary_label=config.primary_model, secondary_label=config.secondary_model,
            console=status, audit_log=alog,
        ))

    alog.log("run_end", detail=f"{summary.total} accounts, {summary.both_succeeded} passed, "
             f"{summary.primary_only} partial, {summary.both_failed} failed")
    alog.flush()
    return exit_code


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    console = Console(quiet=args.quiet)

    if args.version:
        from account_checker import __version__
        console.print(f"account_checker {__version__}")
        return 0

    if args.self_test:
        from account_checker.self_test import run_self_test
        ok = asyncio.run(run_self_test(console))
        return 0 if ok else 1

    status = Console(stderr=True, quiet=args.quiet)
    progress = Console(stderr=True, quiet=args.quiet or not args.verbose)
    try:
        config = load_config(args)
        return run(config, args, console, status, progress)
    except ConfigError as exc:
        Console(stderr=True).print(f"[red]{exc}[/red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
