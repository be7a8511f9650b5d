"""ModelProbe — run the external tool once for one (account, model) pair.

The tool is a black box: it gets the model on its command line, the endpoint
and credential in its environment, and a prompt on stdin. Its exit code and
output are classified into a ProbeResult.

Two paths can resolve a probe: the child exiting, or the timeout timer.
Both settle the same single-assignment cell, so exactly one result is
produced no matter which fires first.
"""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from account_checker.classify import classify, is_success, speed_tier
from account_checker.models import Account, ProbeResult

DEFAULT_PROMPT = "What model are you, and what are your strengths?"
DEFAULT_WARMUP_S = 1.0
_READ_CHUNK = 4096


class _Outcome:
    """Single-assignment result cell shared by the exit path and the timer."""

    def __init__(self) -> None:
        self._future: asyncio.Future[ProbeResult] = asyncio.get_running_loop().create_future()

    def settle(self, result: ProbeResult) -> bool:
        """Store result if nothing won yet. Returns True for the winner only."""
        if self._future.done():
            return False
        self._future.set_result(result)
        return True

    def done(self) -> bool:
        return self._future.done()

    def __await__(self):
        return self._future.__await__()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def _drain(stream: Optional[asyncio.StreamReader]) -> str:
    buf = bytearray()
    if stream is None:
        return ""
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        buf.extend(chunk)
    return buf.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class ModelProbe:
    """Probe settings shared by every invocation in a run."""

    command: Sequence[str]
    timeout_ms: int
    prompt: str = DEFAULT_PROMPT
    warmup_s: float = DEFAULT_WARMUP_S
    base_url_var: str = "API_BASE_URL"
    api_key_var: str = "API_KEY"

    def child_env(self, account: Account, base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        """Fresh environment for one child: ambient copy plus the two overrides."""
        env = dict(os.environ if base is None else base)
        env[self.base_url_var] = account.endpoint
        env[self.api_key_var] = account.credential
        return env

    async def probe(self, account: Account, model_id: str) -> ProbeResult:
        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command, "--model", model_id,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.child_env(account),
            )
        except OSError as exc:
            return ProbeResult.failed(
                model_id, _elapsed_ms(start), "launch_failed",
                f"cannot launch {os.path.basename(self.command[0])}: {exc.strerror or exc}",
            )

        outcome = _Outcome()
        readers = [
            asyncio.create_task(_drain(proc.stdout)),
            asyncio.create_task(_drain(proc.stderr)),
        ]
        watcher = asyncio.create_task(self._await_exit(proc, model_id, start, readers, outcome))
        feeder = asyncio.create_task(self._send_prompt(proc, outcome))

        def _on_timeout() -> None:
            won = outcome.settle(ProbeResult.failed(
                model_id, _elapsed_ms(start), "timeout", f"no response within {self.timeout_ms}ms",
            ))
            if won and proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass

        timer = asyncio.get_running_loop().call_later(self.timeout_ms / 1000, _on_timeout)
        try:
            return await outcome
        finally:
            timer.cancel()
            feeder.cancel()
            watcher.cancel()
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
            # reap, so a killed child never lingers as a zombie
            await proc.wait()
            for t in readers:
                t.cancel()
            await asyncio.gather(watcher, feeder, *readers, return_exceptions=True)

    async def _send_prompt(self, proc: asyncio.subprocess.Process, outcome: _Outcome) -> None:
        await asyncio.sleep(self.warmup_s)
        if outcome.done() or proc.returncode is not None or proc.stdin is None:
            return
        try:
            proc.stdin.write(f"{self.prompt}\n".encode("utf-8"))
            await proc.stdin.drain()
            proc.stdin.close()
        except (BrokenPipeError, ConnectionResetError):
            # child exited before reading its prompt; the exit path reports it
            return

    async def _await_exit(
        self,
        proc: asyncio.subprocess.Process,
        model_id: str,
        start: float,
        readers: list[asyncio.Task],
        outcome: _Outcome,
    ) -> None:
        code = await proc.wait()
        elapsed = _elapsed_ms(start)
        stdout, stderr = await asyncio.gather(*readers)
        outcome.settle(self.interpret(model_id, code, stdout, stderr, elapsed))

    @staticmethod
    def interpret(model_id: str, exit_code: int, stdout: str, stderr: str, elapsed_ms: int) -> ProbeResult:
        """Turn a finished run into a ProbeResult."""
        if is_success(exit_code, stdout, stderr):
            return ProbeResult.succeeded(model_id, elapsed_ms, stdout.strip(), speed_tier(elapsed_ms))
        kind, detail = classify(stderr + stdout, exit_code)
        return ProbeResult.failed(model_id, elapsed_ms, kind, detail, exit_code=exit_code)
