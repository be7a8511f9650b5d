"""Security utilities — credential masking, file permission checks, logging suppression.

Only a credential prefix is ever surfaced on the console, in JSON output or
in the run log. The CSV report is the one sink holding full credentials, so
it is written owner-only.
"""

from __future__ import annotations

import hashlib
import logging
import os
import stat
from enum import Enum
from pathlib import Path


class RedactionLevel(Enum):
    """Controls how much of a credential is visible."""
    PREFIX = "prefix"     # first 10 chars + ...
    FULL = "full"         # [REDACTED]
    HASH = "hash"         # [sha256:abcd1234]


def suppress_credential_logging() -> None:
    """Keep httpx/httpcore from logging webhook URLs (with tokens) at DEBUG level."""
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def is_unsafe_link(path: Path) -> bool:
    """True if writing to path could land somewhere else: the path is a symlink,
    sits under a symlinked directory, or is a file with more than one hard link."""
    if path.is_symlink():
        return True
    if not path.exists():
        return False
    try:
        if path.resolve(strict=True) != path.absolute():
            return True
        return path.is_file() and path.stat().st_nlink > 1
    except OSError:
        return True


def check_output_permissions(path: Path, force: bool = False) -> bool:
    """Return True if safe to write credentials there. Refuses links, refuses
    world-readable targets unless forced."""
    if is_unsafe_link(path):
        return False
    if not path.exists():
        parent = path.parent
        if parent.exists():
            mode = os.stat(parent).st_mode
            if mode & stat.S_IROTH and not force:
                return False
        return True
    mode = os.stat(path).st_mode
    if mode & stat.S_IROTH:
        return force
    return True


def mask_credential(key: str, level: RedactionLevel = RedactionLevel.PREFIX) -> str:
    if level == RedactionLevel.FULL:
        return "[REDACTED]"
    if level == RedactionLevel.HASH:
        h = hashlib.sha256(key.encode()).hexdigest()[:12]
        return f"[sha256:{h}]"
    if len(key) <= 10:
        return "*" * len(key)
    return f"{key[:10]}..."
