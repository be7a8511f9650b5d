"""Pure classification of tool output — no process handling here.

The external tool reports failures as free text, so matching is a plain
substring table that can be revised and tested on its own.
"""

from __future__ import annotations

from typing import Optional

from account_checker.models import MAX_DETAIL_CHARS, ErrorKind, SpeedTier

# First match wins; order is significant.
ERROR_PATTERNS: list[tuple[tuple[str, ...], ErrorKind, str]] = [
    (("authentication", "unauthorized", "401"), "auth_failed", "API key invalid or expired"),
    (("rate limit", "429"), "rate_limited", "Too many requests"),
    (("permission", "403"), "forbidden", "No permission for this model"),
    (("connection", "network"), "network_error", "Network connection failed"),
    (("model", "not found"), "model_unavailable", "Model does not exist or is unavailable"),
]

# (upper bound in ms, tier); anything slower is very-slow
SPEED_TIERS: list[tuple[int, SpeedTier]] = [
    (3000, "very-fast"),
    (8000, "fast"),
    (15000, "slow"),
]


def is_success(exit_code: Optional[int], stdout: str, stderr: str) -> bool:
    if exit_code != 0 or not stdout:
        return False
    return "error" not in stdout.lower() and "error" not in stderr.lower()


def classify(combined_output: str, exit_code: Optional[int]) -> tuple[ErrorKind, str]:
    """Map failed-run output (stderr + stdout) to an error kind and a short detail."""
    haystack = combined_output.lower()
    for needles, kind, detail in ERROR_PATTERNS:
        if any(n in haystack for n in needles):
            return kind, detail
    if exit_code not in (0, None):
        return "process_error", f"tool exited with code {exit_code}"
    return "unknown", combined_output.strip()[:MAX_DETAIL_CHARS] or "No valid response received"


def speed_tier(elapsed_ms: int) -> SpeedTier:
    for bound, tier in SPEED_TIERS:
        if elapsed_ms < bound:
            return tier
    return "very-slow"
