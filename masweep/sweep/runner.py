"""masweep.sweep.runner

Run the engine once.

Contract:
- start `argv` in the handle's working directory, no stdin
- stderr merged into stdout so no diagnostic line is lost
- block until exit and the output stream closes

Default is to wait forever. A hung engine stalls the sweep; `timeout_s` is the
deadline hook, `cancel` the cancellation hook.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from collections.abc import Sequence
from pathlib import Path

from masweep.core.config import EngineSettings
from masweep.core.exceptions import (
    ProcessLaunchError,
    ProcessRuntimeError,
    ProcessTimeoutError,
    SweepCancelledError,
)
from masweep.core.types import RunOutput
from masweep.sweep.serializer import ConfigHandle

logger = logging.getLogger(__name__)


def _resolve_binary(binary: Path, working_dir: Path) -> str:
    # Bare names go through PATH. Relative paths are anchored at the configured
    # working dir, not the per-run one, so isolated runs still find the binary.
    if binary.is_absolute() or len(binary.parts) == 1:
        return str(binary)
    return str((working_dir / binary).resolve())


class ProcessRunner:
    def __init__(
        self,
        argv: Sequence[str],
        *,
        timeout_s: float | None = None,
        poll_interval_s: float = 0.2,
    ) -> None:
        if not argv:
            raise ValueError("argv must name the engine binary")
        self.argv = list(argv)
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> ProcessRunner:
        binary = _resolve_binary(settings.binary, settings.working_dir)
        return cls([binary, *settings.args], timeout_s=settings.timeout_s)

    def run(
        self,
        handle: ConfigHandle,
        *,
        check: bool = False,
        cancel: threading.Event | None = None,
    ) -> RunOutput:
        """Run the engine against `handle`.

        Raises:
            ProcessLaunchError: binary missing or spawn failed.
            ProcessTimeoutError: deadline passed; the child was killed.
            SweepCancelledError: `cancel` was set; the child was killed.
            ProcessRuntimeError: non-zero exit, only when `check=True`.
        """

        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                self.argv,
                cwd=handle.working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ProcessLaunchError(f"could not start engine {self.argv[0]}: {e}") from e

        deadline = None if self.timeout_s is None else start + self.timeout_s
        with proc:
            while True:
                wait = self.poll_interval_s if cancel is not None else None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        self._kill(proc)
                        raise ProcessTimeoutError(f"engine exceeded {self.timeout_s}s and was killed")
                    wait = remaining if wait is None else min(wait, remaining)

                try:
                    text, _ = proc.communicate(timeout=wait)
                    break
                except subprocess.TimeoutExpired:
                    if cancel is not None and cancel.is_set():
                        self._kill(proc)
                        raise SweepCancelledError("engine run cancelled") from None

        out = RunOutput(text=text or "", returncode=int(proc.returncode), duration_s=time.monotonic() - start)
        if check and not out.ok:
            raise ProcessRuntimeError(f"engine exited with status {out.returncode}", out)
        return out

    @staticmethod
    def _kill(proc: subprocess.Popen[str]) -> None:
        proc.kill()
        # Reap the child and drain the pipe so nothing is left behind.
        proc.communicate()
        logger.debug("engine_killed", extra={"pid": proc.pid})
