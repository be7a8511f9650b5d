"""Tests for account_checker.models."""

import json

import pytest

from account_checker.models import (
    ERROR_KINDS,
    OVERALL_STATUSES,
    Account,
    AccountResult,
    BatchSummary,
    ProbeResult,
    overall_status,
)

ACCOUNT = Account("team-a", "https://relay.example.com", "cr_SUPERSECRETKEY1234567890")


def _ok(model="p", ms=100):
    return ProbeResult.succeeded(model, ms, "I am Model X", "very-fast")


def _fail(model="p", kind="auth_failed"):
    return ProbeResult.failed(model, 50, kind, "API key invalid or expired", exit_code=1)


def _skip(model="s"):
    return ProbeResult.skipped(model, "p failed, test skipped")


class TestAccount:
    def test_credential_not_in_repr(self):
        assert ACCOUNT.credential not in repr(ACCOUNT)
        assert ACCOUNT.credential not in str(ACCOUNT)

    def test_masked_prefix(self):
        assert ACCOUNT.masked_credential == "cr_SUPERSE..."

    def test_short_credential_fully_masked(self):
        assert Account("x", "u", "abc").masked_credential == "***"

    def test_to_dict_redaction_levels(self):
        assert ACCOUNT.to_dict("full")["credential"] == "[REDACTED]"
        assert ACCOUNT.to_dict("hash")["credential"].startswith("[sha256:")

    def test_frozen(self):
        with pytest.raises(AttributeError):
            ACCOUNT.name = "x"  # type: ignore[misc]


class TestProbeResult:
    def test_success_has_preview_and_no_error(self):
        r = _ok()
        assert r.ok
        assert r.error_kind is None
        assert r.response_preview == "I am Model X"

    def test_preview_truncated_to_200(self):
        r = ProbeResult.succeeded("p", 1, "x" * 500, "very-fast")
        assert len(r.response_preview) == 200

    def test_detail_truncated_to_100(self):
        r = ProbeResult.failed("p", 1, "unknown", "y" * 500)
        assert len(r.error_detail) == 100

    def test_success_with_error_kind_rejected(self):
        with pytest.raises(ValueError):
            ProbeResult(model_id="p", status="success", error_kind="unknown", response_preview="x")

    def test_success_without_preview_rejected(self):
        with pytest.raises(ValueError):
            ProbeResult(model_id="p", status="success")

    def test_failed_without_kind_rejected(self):
        with pytest.raises(ValueError):
            ProbeResult(model_id="p", status="failed")

    def test_skipped_kind(self):
        assert _skip().error_kind == "primary_skipped"

    def test_canonical_field_order(self):
        assert list(_ok().to_dict()) == [
            "model_id", "status", "elapsed_ms", "error_kind", "error_detail",
            "response_preview", "speed_tier", "exit_code",
        ]


class TestOverallStatus:
    @pytest.mark.parametrize("primary,secondary,expected", [
        (_ok(), _ok("s"), "both_succeeded"),
        (_ok(), _fail("s"), "primary_only"),
        (_fail(), _skip(), "both_failed"),
        (_fail(kind="timeout"), _skip(), "both_failed"),
    ])
    def test_table(self, primary, secondary, expected):
        assert overall_status(primary, secondary) == expected
        assert AccountResult(ACCOUNT, primary, secondary).overall_status == expected

    def test_secondary_must_be_skipped_after_failed_primary(self):
        with pytest.raises(ValueError):
            AccountResult(ACCOUNT, _fail(), _fail("s"))

    def test_secondary_cannot_be_skipped_after_success(self):
        with pytest.raises(ValueError):
            AccountResult(ACCOUNT, _ok(), _skip())

    def test_no_raw_credential_in_json(self):
        r = AccountResult(ACCOUNT, _ok(), _ok("s"))
        assert ACCOUNT.credential not in json.dumps(r.to_dict())
        assert ACCOUNT.credential not in repr(r)


class TestBatchSummary:
    def test_from_results(self):
        results = [
            AccountResult(ACCOUNT, _ok(), _ok("s")),
            AccountResult(ACCOUNT, _ok(), _fail("s")),
            AccountResult(ACCOUNT, _fail(), _skip()),
            AccountResult(ACCOUNT, _fail(), _skip()),
        ]
        s = BatchSummary.from_results(results)
        assert (s.total, s.both_succeeded, s.primary_only, s.both_failed) == (4, 1, 1, 2)
        assert s.primary_success == 2
        assert s.secondary_success == 1
        assert s.has_failures
        assert s.percent(s.both_failed) == 50.0

    def test_empty(self):
        s = BatchSummary.from_results([])
        assert s.total == 0
        assert not s.has_failures
        assert s.to_dict()["avg_elapsed_ms"] == 0


class TestLiteralSets:
    def test_error_kinds(self):
        assert len(ERROR_KINDS) == 10
        assert "primary_skipped" in ERROR_KINDS

    def test_overall_statuses(self):
        assert OVERALL_STATUSES == {"both_succeeded", "primary_only", "both_failed"}
