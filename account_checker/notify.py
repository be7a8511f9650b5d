"""Webhook notification — DingTalk-compatible markdown summary of a batch run.

Delivery problems are reported and logged, never raised: a failed
notification must not change the recorded results or the exit status.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import time
from datetime import datetime
from typing import Optional
from urllib.parse import quote_plus

import httpx
from rich.console import Console

from account_checker.audit_log import AuditLog
from account_checker.models import AccountResult, BatchSummary

NOTIFY_TIMEOUT_S = 10.0
MAX_LISTED = 10
ERROR_SNIPPET = 30


def sign_url(webhook: str, secret: str, timestamp_ms: Optional[int] = None) -> str:
    """Append DingTalk's timestamp + HMAC-SHA256 signature query parameters."""
    ts = int(time.time() * 1000) if timestamp_ms is None else timestamp_ms
    string_to_sign = f"{ts}\n{secret}"
    digest = hmac.new(secret.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha256).digest()
    sign = quote_plus(base64.b64encode(digest).decode("ascii"))
    sep = "&" if "?" in webhook else "?"
    return f"{webhook}{sep}timestamp={ts}&sign={sign}"


def should_notify(summary: BatchSummary, always: bool = False) -> bool:
    return always or summary.has_failures


def _snippet(text: Optional[str]) -> str:
    return text[:ERROR_SNIPPET] if text else "unknown error"


def build_message(
    results: list[AccountResult],
    summary: BatchSummary,
    primary_label: str = "primary",
    secondary_label: str = "secondary",
    now: Optional[datetime] = None,
) -> dict:
    stamp = f"{now or datetime.now():%Y-%m-%d %H:%M:%S}"
    failed = [r for r in results if r.overall_status == "both_failed"]
    partial = [r for r in results if r.overall_status == "primary_only"]

    if not failed and not partial:
        text = (
            f"## ✅ Account check passed\n\n"
            f"📅 **Run at**: {stamp}  \n"
            f"📊 **Results**:\n"
            f"- Accounts: {summary.total}\n"
            f"- Both models passed: {summary.both_succeeded} 🎉\n\n"
            f"🎯 All accounts are healthy."
        )
        return {"msgtype": "markdown", "markdown": {"title": "Account check passed", "text": text}}

    lines = [
        "## 🚨 Account check alert",
        "",
        f"📅 **Run at**: {stamp}  ",
        "📊 **Overview**:",
        f"- Accounts: {summary.total}",
        f"- Both models passed: {summary.both_succeeded} ✅",
        f"- {primary_label} only: {summary.primary_only} ⚠️",
        f"- Fully failed: {summary.both_failed} ❌",
        "",
        "---",
    ]
    if failed:
        lines.append(f"❌ **Fully failed accounts** ({len(failed)}):")
        for r in failed[:MAX_LISTED]:
            lines.append(f"• **{r.account.name}**: {r.account.endpoint} → {_snippet(r.primary.error_detail)}")
        if len(failed) > MAX_LISTED:
            lines.append(f"• …and {len(failed) - MAX_LISTED} more failed accounts")
    if partial:
        if failed:
            lines.append("")
        lines.append(f"⚠️ **Partially failed accounts** ({len(partial)}):")
        for r in partial[:MAX_LISTED]:
            lines.append(f"• **{r.account.name}**: {secondary_label} {_snippet(r.secondary.error_detail)}")
        if len(partial) > MAX_LISTED:
            lines.append(f"• …and {len(partial) - MAX_LISTED} more partially failed accounts")
    lines += ["", "⏰ Please follow up on the failed accounts."]
    return {"msgtype": "markdown", "markdown": {"title": "Account check alert", "text": "\n".join(lines)}}


async def send_message(
    webhook: str,
    message: dict,
    secret: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> tuple[bool, str]:
    """POST the message. Returns (ok, detail); never raises for delivery problems."""
    url = sign_url(webhook, secret) if secret else webhook
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=NOTIFY_TIMEOUT_S)
    try:
        resp = await client.post(url, json=message)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return False, f"{type(exc).__name__}: {exc}"
    finally:
        if owns_client:
            await client.aclose()
    try:
        body = resp.json()
    except ValueError:
        return False, f"HTTP {resp.status_code}: unparseable response"
    if not isinstance(body, dict):
        return False, f"HTTP {resp.status_code}: unexpected response"
    if resp.status_code == 200 and body.get("errcode") == 0:
        return True, "sent"
    return False, str(body.get("errmsg") or f"HTTP {resp.status_code}")


async def notify(
    results: list[AccountResult],
    summary: BatchSummary,
    webhook: Optional[str],
    secret: Optional[str] = None,
    always: bool = False,
    at_all: bool = False,
    primary_label: str = "primary",
    secondary_label: str = "secondary",
    console: Optional[Console] = None,
    audit_log: Optional[AuditLog] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """Send the run summary if warranted. Returns True only if a message was delivered."""
    console = console or Console(stderr=True)
    if not webhook:
        return False
    if not should_notify(summary, always):
        console.print("[dim]No failed accounts, notification skipped[/dim]")
        return False

    message = build_message(results, summary, primary_label, secondary_label)
    if at_all and summary.both_failed > 0:
        message["at"] = {"isAtAll": True}

    ok, detail = await send_message(webhook, message, secret, client)
    if ok:
        console.print("[green]Notification sent[/green]")
    else:
        console.print(f"[yellow]Notification failed ({detail}); results are unaffected[/yellow]")
    if audit_log is not None:
        audit_log.log("notify", status="sent" if ok else "failed", detail="" if ok else detail)
    return ok
