"""Run configuration, resolved once at startup.

Precedence for every setting: explicit CLI argument > process environment >
optional .env file > compiled default. The resulting RunConfig is frozen and
passed explicitly; nothing below the CLI reads the ambient environment.
"""

from __future__ import annotations

import argparse
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from account_checker.probe import DEFAULT_PROMPT, DEFAULT_WARMUP_S, ModelProbe
from account_checker.validator import DEFAULT_PRIMARY_MODEL, DEFAULT_SECONDARY_MODEL

ENV_WEBHOOK = "DINGTALK_WEBHOOK"
ENV_SECRET = "DINGTALK_SECRET"
ENV_TOOL = "ACCOUNT_CHECK_TOOL"
ENV_TIMEOUT = "ACCOUNT_CHECK_TIMEOUT_MS"
ENV_PARALLEL = "ACCOUNT_CHECK_PARALLEL"

DEFAULT_TOOL = "claude"
DEFAULT_TIMEOUT_MS = 45_000
DEFAULT_PARALLEL = 1
DEFAULT_REPORT_DIR = Path("test-reports")


class ConfigError(ValueError):
    """Fatal input or configuration problem; aborts the run before probing."""


@dataclass(frozen=True)
class RunConfig:
    accounts_file: Path
    tool_command: tuple[str, ...] = (DEFAULT_TOOL,)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    parallel: int = DEFAULT_PARALLEL
    primary_model: str = DEFAULT_PRIMARY_MODEL
    secondary_model: str = DEFAULT_SECONDARY_MODEL
    prompt: str = DEFAULT_PROMPT
    warmup_s: float = DEFAULT_WARMUP_S
    base_url_var: str = "API_BASE_URL"
    api_key_var: str = "API_KEY"
    report_dir: Path = DEFAULT_REPORT_DIR
    webhook_url: Optional[str] = field(default=None, repr=False)
    webhook_secret: Optional[str] = field(default=None, repr=False)
    at_all: bool = False
    notify_always: bool = False
    notify: bool = True
    redaction_level: str = "prefix"
    force_insecure_output: bool = False

    def make_probe(self) -> ModelProbe:
        return ModelProbe(
            command=self.tool_command,
            timeout_ms=self.timeout_ms,
            prompt=self.prompt,
            warmup_s=self.warmup_s,
            base_url_var=self.base_url_var,
            api_key_var=self.api_key_var,
        )

    @property
    def log_path(self) -> Path:
        return self.report_dir / "account-check.log"


def _positive_int(raw: object, name: str) -> int:
    try:
        value = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{name} must be at least 1, got {value}")
    return value


def load_config(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> RunConfig:
    """Build the immutable RunConfig from parsed CLI args and the environment."""
    environ = os.environ if environ is None else environ
    file_vals: dict[str, Optional[str]] = {}
    env_file = getattr(args, "env", None)
    if env_file is not None:
        if not Path(env_file).is_file():
            raise ConfigError(f"env file not found: {env_file}")
        file_vals = dict(dotenv_values(env_file))

    def pick(explicit: object, key: str) -> object:
        if explicit is not None:
            return explicit
        if environ.get(key):
            return environ[key]
        return file_vals.get(key) or None

    if args.accounts_file is None:
        raise ConfigError("an accounts file is required")

    tool = pick(args.tool, ENV_TOOL) or DEFAULT_TOOL
    command = tuple(shlex.split(str(tool)))
    if not command:
        raise ConfigError("tool command is empty")

    raw_timeout = pick(args.timeout, ENV_TIMEOUT)
    timeout_ms = _positive_int(DEFAULT_TIMEOUT_MS if raw_timeout is None else raw_timeout, "timeout")
    raw_parallel = pick(args.parallel, ENV_PARALLEL)
    parallel = _positive_int(DEFAULT_PARALLEL if raw_parallel is None else raw_parallel, "parallel")

    warmup_s = DEFAULT_WARMUP_S if args.warmup is None else args.warmup
    if warmup_s < 0:
        raise ConfigError(f"warmup must not be negative, got {warmup_s}")

    return RunConfig(
        accounts_file=Path(args.accounts_file),
        tool_command=command,
        timeout_ms=timeout_ms,
        parallel=parallel,
        primary_model=args.primary_model or DEFAULT_PRIMARY_MODEL,
        secondary_model=args.secondary_model or DEFAULT_SECONDARY_MODEL,
        prompt=args.prompt or DEFAULT_PROMPT,
        warmup_s=warmup_s,
        base_url_var=args.base_url_var or "API_BASE_URL",
        api_key_var=args.key_var or "API_KEY",
        report_dir=Path(args.report_dir) if args.report_dir else DEFAULT_REPORT_DIR,
        webhook_url=pick(args.webhook, ENV_WEBHOOK),  # type: ignore[arg-type]
        webhook_secret=pick(args.webhook_secret, ENV_SECRET),  # type: ignore[arg-type]
        at_all=bool(args.at_all),
        notify_always=bool(args.notify_always),
        notify=not args.no_notify,
        redaction_level=args.redaction_level or "prefix",
        force_insecure_output=bool(args.force_insecure_output),
    )
