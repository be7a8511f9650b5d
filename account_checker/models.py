"""Data models for account check results.

- Status values as Literal, so a typo is caught by the type checker
- frozen dataclasses, so results never change after a probe resolves
- Canonical field ordering via to_dict() for stable JSON
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from account_checker.security import RedactionLevel, mask_credential

ProbeStatus = Literal["testing", "success", "failed", "skipped"]

ErrorKind = Literal[
    "timeout",
    "auth_failed",
    "rate_limited",
    "forbidden",
    "network_error",
    "model_unavailable",
    "process_error",
    "launch_failed",
    "unknown",
    "primary_skipped",
]

SpeedTier = Literal["very-fast", "fast", "slow", "very-slow"]

OverallStatus = Literal["both_succeeded", "primary_only", "both_failed"]

ERROR_KINDS: frozenset[str] = frozenset(ErrorKind.__args__)  # type: ignore[attr-defined]
OVERALL_STATUSES: frozenset[str] = frozenset(OverallStatus.__args__)  # type: ignore[attr-defined]

MAX_DETAIL_CHARS = 100
MAX_PREVIEW_CHARS = 200


@dataclass(frozen=True)
class Account:
    name: str
    endpoint: str
    credential: str = field(repr=False)

    @property
    def masked_credential(self) -> str:
        return mask_credential(self.credential)

    def to_dict(self, redaction_level: str = "prefix") -> dict:
        return {
            "name": self.name,
            "endpoint": self.endpoint,
            "credential": mask_credential(self.credential, RedactionLevel(redaction_level)),
        }


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one tool invocation for one (account, model) pair."""

    model_id: str
    status: ProbeStatus
    elapsed_ms: int = 0
    error_kind: Optional[ErrorKind] = None
    error_detail: Optional[str] = None
    response_preview: Optional[str] = None
    speed_tier: Optional[SpeedTier] = None
    exit_code: Optional[int] = None

    def __post_init__(self) -> None:
        if self.status == "success" and (self.error_kind is not None or self.response_preview is None):
            raise ValueError("successful probe needs a response preview and no error kind")
        if self.status == "failed" and self.error_kind is None:
            raise ValueError("failed probe needs an error kind")
        if self.elapsed_ms < 0:
            raise ValueError("elapsed_ms must be non-negative")

    @classmethod
    def succeeded(cls, model_id: str, elapsed_ms: int, preview: str, tier: SpeedTier) -> "ProbeResult":
        return cls(
            model_id=model_id, status="success", elapsed_ms=elapsed_ms,
            response_preview=preview[:MAX_PREVIEW_CHARS], speed_tier=tier, exit_code=0,
        )

    @classmethod
    def failed(
        cls,
        model_id: str,
        elapsed_ms: int,
        kind: ErrorKind,
        detail: str,
        exit_code: Optional[int] = None,
    ) -> "ProbeResult":
        return cls(
            model_id=model_id, status="failed", elapsed_ms=elapsed_ms,
            error_kind=kind, error_detail=detail[:MAX_DETAIL_CHARS], exit_code=exit_code,
        )

    @classmethod
    def skipped(cls, model_id: str, reason: str) -> "ProbeResult":
        return cls(
            model_id=model_id, status="skipped", error_kind="primary_skipped",
            error_detail=reason[:MAX_DETAIL_CHARS],
        )

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict:
        return {
            "model_id": self.model_id,
            "status": self.status,
            "elapsed_ms": self.elapsed_ms,
            "error_kind": self.error_kind,
            "error_detail": self.error_detail,
            "response_preview": self.response_preview,
            "speed_tier": self.speed_tier,
            "exit_code": self.exit_code,
        }


def overall_status(primary: ProbeResult, secondary: ProbeResult) -> OverallStatus:
    """Derive the account verdict from its two probe results."""
    if not primary.ok:
        return "both_failed"
    return "both_succeeded" if secondary.ok else "primary_only"


@dataclass(frozen=True)
class AccountResult:
    account: Account
    primary: ProbeResult
    secondary: ProbeResult

    def __post_init__(self) -> None:
        if (self.secondary.status == "skipped") != (not self.primary.ok):
            raise ValueError("secondary probe must be skipped exactly when the primary probe failed")

    @property
    def overall_status(self) -> OverallStatus:
        return overall_status(self.primary, self.secondary)

    @property
    def total_elapsed_ms(self) -> int:
        return self.primary.elapsed_ms + self.secondary.elapsed_ms

    def to_dict(self, redaction_level: str = "prefix") -> dict:
        return {
            "account": self.account.to_dict(redaction_level),
            "primary": self.primary.to_dict(),
            "secondary": self.secondary.to_dict(),
            "overall_status": self.overall_status,
        }


@dataclass(frozen=True)
class BatchSummary:
    """Aggregate counts for a batch run, always recomputed from the results."""

    total: int
    both_succeeded: int
    primary_only: int
    both_failed: int
    primary_success: int
    secondary_success: int
    total_elapsed_ms: int

    @classmethod
    def from_results(cls, results: list[AccountResult]) -> "BatchSummary":
        by_status = {s: 0 for s in OVERALL_STATUSES}
        for r in results:
            by_status[r.overall_status] += 1
        return cls(
            total=len(results),
            both_succeeded=by_status["both_succeeded"],
            primary_only=by_status["primary_only"],
            both_failed=by_status["both_failed"],
            primary_success=sum(1 for r in results if r.primary.ok),
            secondary_success=sum(1 for r in results if r.secondary.ok),
            total_elapsed_ms=sum(r.total_elapsed_ms for r in results),
        )

    @property
    def has_failures(self) -> bool:
        return self.both_failed > 0 or self.primary_only > 0

    def percent(self, count: int) -> float:
        return round(count / self.total * 100, 1) if self.total else 0.0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "both_succeeded": self.both_succeeded,
            "primary_only": self.primary_only,
            "both_failed": self.both_failed,
            "primary_success": self.primary_success,
            "secondary_success": self.secondary_success,
            "avg_elapsed_ms": round(self.total_elapsed_ms / self.total, 2) if self.total else 0,
        }
