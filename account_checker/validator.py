"""AccountValidator — primary/secondary sequencing and chunked batch runs.

- Per account, probes run strictly one after another; the tool cannot hold
  two sessions reliably
- The cheaper primary model is a filter: the secondary model is only tried
  when the primary one answered
- Batches run in ordered chunks of `parallel` accounts, each chunk with
  asyncio.gather(return_exceptions=True), results kept in input order
"""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol

from rich.console import Console

from account_checker.audit_log import AuditLog
from account_checker.models import Account, AccountResult, ProbeResult

DEFAULT_PRIMARY_MODEL = "claude-sonnet-4-20250514"
DEFAULT_SECONDARY_MODEL = "claude-opus-4-1-20250805"


class Prober(Protocol):
    async def probe(self, account: Account, model_id: str) -> ProbeResult: ...


def chunked(accounts: list[Account], size: int) -> list[list[Account]]:
    if size < 1:
        raise ValueError(f"chunk size must be at least 1, got {size}")
    return [accounts[i:i + size] for i in range(0, len(accounts), size)]


class AccountValidator:
    def __init__(
        self,
        prober: Prober,
        primary_model: str = DEFAULT_PRIMARY_MODEL,
        secondary_model: str = DEFAULT_SECONDARY_MODEL,
        console: Optional[Console] = None,
        audit_log: Optional[AuditLog] = None,
    ):
        self.prober = prober
        self.primary_model = primary_model
        self.secondary_model = secondary_model
        self.console = console or Console(stderr=True, quiet=True)
        self.alog = audit_log

    async def validate(self, account: Account) -> AccountResult:
        self.console.print(f"[bold]Checking[/bold] [cyan]{account.name}[/cyan] ({account.endpoint})")
        primary = await self._run_probe(account, self.primary_model)
        if primary.ok:
            secondary = await self._run_probe(account, self.secondary_model)
        else:
            secondary = ProbeResult.skipped(
                self.secondary_model, f"{self.primary_model} failed, test skipped",
            )
        result = AccountResult(account=account, primary=primary, secondary=secondary)
        self._log("account", account.name, status=result.overall_status,
                  latency_ms=result.total_elapsed_ms)
        return result

    async def run_batch(self, accounts: list[Account], parallel: int = 1) -> list[AccountResult]:
        """Validate every account, `parallel` at a time, preserving input order."""
        results: list[AccountResult] = []
        for chunk in chunked(accounts, parallel):
            raw = await asyncio.gather(*(self.validate(a) for a in chunk), return_exceptions=True)
            for account, r in zip(chunk, raw):
                if isinstance(r, BaseException):
                    r = self._crashed(account, r)
                results.append(r)
        return results

    async def _run_probe(self, account: Account, model_id: str) -> ProbeResult:
        r = await self.prober.probe(account, model_id)
        if r.ok:
            self.console.print(
                f"  [green]✓[/green] {model_id}: {r.speed_tier} ({r.elapsed_ms}ms)"
            )
            self.console.print(f"    [dim]{(r.response_preview or '')[:80]}[/dim]")
        else:
            self.console.print(f"  [red]✗[/red] {model_id}: {r.error_kind} — {r.error_detail}")
        self._log("probe", account.name, model=model_id, status=r.error_kind or r.status,
                  latency_ms=r.elapsed_ms)
        return r

    def _crashed(self, account: Account, exc: BaseException) -> AccountResult:
        detail = f"{type(exc).__name__}: {exc}"
        self.console.print(f"  [red]✗[/red] {account.name}: {detail}")
        self._log("account_error", account.name, detail=detail)
        return AccountResult(
            account=account,
            primary=ProbeResult.failed(self.primary_model, 0, "unknown", detail),
            secondary=ProbeResult.skipped(
                self.secondary_model, f"{self.primary_model} failed, test skipped",
            ),
        )

    def _log(self, event: str, account: str, **fields) -> None:
        if self.alog is not None:
            self.alog.log(event, account=account, **fields)
