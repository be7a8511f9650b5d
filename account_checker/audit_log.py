"""Run log — one JSON line per run event, appended next to the CSV report.

Events: run_start, probe, account, account_error, notify, run_end. Entries are
buffered during the run and written once at the end. Callers pass account
names and masked values only; credentials never reach this file.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from account_checker.security import is_unsafe_link


class AuditLog:
    """Buffered JSONL run log, written owner-only and rotated once oversized."""

    MAX_SIZE = 10 * 1024 * 1024  # 10 MB

    def __init__(self, path: Path):
        self.path = path
        self._entries: list[dict] = []

    def log(self, event: str, latency_ms: float = 0.0, **fields: str) -> None:
        """Record one event. Empty fields are left out of the line."""
        entry = {"ts": datetime.now(timezone.utc).isoformat(timespec="seconds"), "event": event}
        entry.update((k, v) for k, v in fields.items() if v)
        if latency_ms:
            entry["latency_ms"] = round(latency_ms, 2)
        self._entries.append(entry)

    def _rotate(self) -> None:
        if self.path.exists() and self.path.stat().st_size > self.MAX_SIZE:
            os.replace(self.path, self.path.with_name(self.path.name + ".1"))

    def flush(self) -> None:
        """Append buffered entries; entries aimed at a link are dropped."""
        entries, self._entries = self._entries, []
        if not entries or is_unsafe_link(self.path):
            return
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        self._rotate()
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.writelines(json.dumps(e, ensure_ascii=False) + "\n" for e in entries)

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def events(self) -> list[str]:
        return [e["event"] for e in self._entries]
