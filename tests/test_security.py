"""Tests for credential masking, output permission checks, and the run log."""

import json
import logging
import os
import stat

from account_checker.audit_log import AuditLog
from account_checker.security import (
    RedactionLevel,
    check_output_permissions,
    is_unsafe_link,
    mask_credential,
    suppress_credential_logging,
)


class TestMaskCredential:
    def test_prefix(self):
        assert mask_credential("cr_1234567890abcdef") == "cr_1234567..."

    def test_short_key_fully_hidden(self):
        assert mask_credential("short") == "*****"

    def test_full(self):
        assert mask_credential("cr_1234567890abcdef", RedactionLevel.FULL) == "[REDACTED]"

    def test_hash_is_stable_and_hides_key(self):
        a = mask_credential("cr_1234567890abcdef", RedactionLevel.HASH)
        assert a == mask_credential("cr_1234567890abcdef", RedactionLevel.HASH)
        assert a.startswith("[sha256:")
        assert "cr_" not in a


class TestOutputPermissions:
    def test_private_dir_ok(self, tmp_path):
        d = tmp_path / "private"
        d.mkdir(mode=0o700)
        assert check_output_permissions(d / "out.csv")

    def test_world_readable_file_needs_force(self, tmp_path):
        f = tmp_path / "out.csv"
        f.write_text("")
        os.chmod(f, 0o644)
        assert not check_output_permissions(f)
        assert check_output_permissions(f, force=True)

    def test_symlink_refused(self, tmp_path):
        target = tmp_path / "target.csv"
        target.write_text("")
        link = tmp_path / "link.csv"
        link.symlink_to(target)
        assert not check_output_permissions(link, force=True)

    def test_hardlink_refused(self, tmp_path):
        target = tmp_path / "target.csv"
        target.write_text("")
        os.chmod(target, 0o600)
        os.link(target, tmp_path / "other.csv")
        assert is_unsafe_link(target)
        assert not check_output_permissions(target, force=True)

    def test_symlinked_directory_refused(self, tmp_path):
        real = tmp_path / "real"
        real.mkdir(mode=0o700)
        (real / "out.csv").write_text("")
        (tmp_path / "alias").symlink_to(real, target_is_directory=True)
        assert is_unsafe_link(tmp_path / "alias" / "out.csv")

    def test_plain_file_is_not_a_link(self, tmp_path):
        f = tmp_path / "out.csv"
        f.write_text("")
        assert not is_unsafe_link(f)
        assert not is_unsafe_link(tmp_path / "missing.csv")


class TestSuppressLogging:
    def test_httpx_raised_to_warning(self):
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        suppress_credential_logging()
        assert logging.getLogger("httpx").level == logging.WARNING


class TestAuditLog:
    def test_flush_writes_json_lines(self, tmp_path):
        alog = AuditLog(tmp_path / "logs" / "run.log")
        alog.log("probe", account="alpha", model="m", status="timeout", latency_ms=12.5)
        alog.log("run_end")
        alog.flush()
        lines = (tmp_path / "logs" / "run.log").read_text().splitlines()
        first = json.loads(lines[0])
        assert first["event"] == "probe"
        assert first["latency_ms"] == 12.5
        assert json.loads(lines[1]) == {"ts": json.loads(lines[1])["ts"], "event": "run_end"}
        assert alog.entry_count == 0
        assert stat.S_IMODE((tmp_path / "logs" / "run.log").stat().st_mode) == 0o600

    def test_empty_fields_left_out(self, tmp_path):
        alog = AuditLog(tmp_path / "run.log")
        alog.log("notify", status="sent", detail="")
        alog.flush()
        entry = json.loads((tmp_path / "run.log").read_text())
        assert set(entry) == {"ts", "event", "status"}

    def test_refuses_symlink(self, tmp_path):
        target = tmp_path / "target.log"
        target.write_text("")
        link = tmp_path / "run.log"
        link.symlink_to(target)
        alog = AuditLog(link)
        alog.log("run_start")
        alog.flush()
        assert target.read_text() == ""

    def test_rotates_when_oversized(self, tmp_path):
        path = tmp_path / "run.log"
        path.write_text("x" * 20)
        alog = AuditLog(path)
        alog.MAX_SIZE = 10
        alog.log("run_start")
        alog.flush()
        assert (tmp_path / "run.log.1").read_text() == "x" * 20
        assert json.loads(path.read_text())["event"] == "run_start"
