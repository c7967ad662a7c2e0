"""CLI-based engine runner for Council."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional
import os
import signal
import subprocess
import time
import logging

from council.errors import EngineEmptyOutput, EngineFailed, EngineTimeout, EngineUnavailable

logger = logging.getLogger(__name__)


@dataclass
class CliResult:
    text: str
    duration_ms: float
    returncode: int
    stderr: Optional[str] = None


class CliClient:
    """Run one engine process per call.

    The prompt is written to the child's stdin. There are no retries; a
    failed call raises the matching ``EngineError`` subclass.
    """

    def run(
        self,
        engine: str,
        command: List[str],
        prompt: str,
        timeout_seconds: float,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CliResult:
        if not command:
            raise EngineUnavailable(engine, f"{engine} has no command configured")

        run_env = os.environ.copy()
        if env:
            run_env.update({str(k): str(v) for k, v in env.items()})

        start = time.perf_counter()
        try:
            process = subprocess.Popen(
                list(command),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=cwd,
                env=run_env,
                start_new_session=True,
            )
        except OSError as exc:
            raise EngineUnavailable(engine, f"{engine} executable {command[0]!r} is not runnable: {exc}") from exc

        logger.info(f"Invoking {engine} (pid {process.pid}, timeout {timeout_seconds}s)")
        with process:
            try:
                stdout, stderr = process.communicate(input=prompt, timeout=timeout_seconds)
            except subprocess.TimeoutExpired:
                partial = self._terminate(process)
                logger.warning(f"{engine} timed out after {timeout_seconds}s; process group killed")
                raise EngineTimeout(engine, timeout_seconds, partial)

        duration = (time.perf_counter() - start) * 1000
        stdout = stdout or ""
        stderr = stderr or ""
        if process.returncode != 0:
            logger.warning(f"{engine} exited {process.returncode} after {duration:.0f}ms")
            raise EngineFailed(engine, process.returncode, stderr)
        if not stdout.strip():
            raise EngineEmptyOutput(engine)
        logger.info(f"{engine} finished in {duration:.0f}ms ({len(stdout)} chars)")
        return CliResult(
            text=stdout,
            duration_ms=duration,
            returncode=process.returncode,
            stderr=stderr.strip() or None,
        )

    def _terminate(self, process: subprocess.Popen) -> str:
        """Kill the child's whole process group and reap it; return any partial stdout."""
        if hasattr(os, "killpg"):
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except (ProcessLookupError, PermissionError):
                process.kill()
        else:
            process.kill()
        try:
            stdout, _ = process.communicate(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
            stdout, _ = process.communicate()
        return stdout or ""
