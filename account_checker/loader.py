"""Account list loading — CSV, JSON, or pipe-delimited text, picked by extension.

Any problem here is fatal: the run aborts before a single probe starts.
"""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path

from account_checker.config import ConfigError
from account_checker.models import Account

# JSON records may use either the short or the descriptive field names
_FIELD_ALIASES = {
    "name": ("name",),
    "endpoint": ("url", "endpoint"),
    "credential": ("key", "credential"),
}


def parse_csv(content: str) -> list[Account]:
    """Header row is skipped; columns are name,url,key.

    Leading # lines are ignored, so a previous report can be fed back in.
    """
    accounts = []
    lines = content.splitlines()
    offset = 0
    while offset < len(lines) and (not lines[offset].strip() or lines[offset].startswith("#")):
        offset += 1
    rows = csv.reader(io.StringIO("\n".join(lines[offset:])))
    next(rows, None)
    for row in rows:
        fields = [f.strip() for f in row]
        if not any(fields):
            continue
        if len(fields) < 3:
            raise ConfigError(f"line {offset + rows.line_num}: expected name,url,key")
        accounts.append(_account({"name": fields[0], "url": fields[1], "key": fields[2]}))
    return accounts


def parse_text(content: str) -> list[Account]:
    """One name|url|key per line; blank lines and # comments are ignored."""
    accounts = []
    for lineno, line in enumerate(content.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = [p.strip() for p in line.split("|")]
        if len(parts) < 3:
            raise ConfigError(f"line {lineno}: expected name|url|key")
        accounts.append(_account({"name": parts[0], "url": parts[1], "key": "|".join(parts[2:])}))
    return accounts


def parse_json(content: str) -> list[Account]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ConfigError("JSON account file must contain a list of accounts")
    return [_account(rec) for rec in data]


def _account(record: object) -> Account:
    if not isinstance(record, dict):
        raise ConfigError(f"account record must be an object, got {type(record).__name__}")
    values = {}
    for attr, keys in _FIELD_ALIASES.items():
        raw = next((record[k] for k in keys if record.get(k)), None)
        if not isinstance(raw, str) or not raw.strip():
            name = record.get("name") or "<unnamed>"
            raise ConfigError(f"account {name!r} is missing {'/'.join(keys)}")
        values[attr] = raw.strip()
    return Account(**values)


def load_accounts(path: Path) -> list[Account]:
    """Read and validate the account list. Raises ConfigError on any problem."""
    try:
        content = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise ConfigError(f"cannot read account file {path}: {exc.strerror or exc}") from exc

    suffix = path.suffix.lower()
    if suffix == ".csv":
        accounts = parse_csv(content)
    elif suffix == ".txt":
        accounts = parse_text(content)
    else:
        accounts = parse_json(content)

    if not accounts:
        raise ConfigError(f"no accounts found in {path}")
    return accounts
