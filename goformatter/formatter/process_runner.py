"""Synchronous execution of external formatter commands."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Everything a single formatter run produced."""

    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    spawn_error: BaseException | None = None

    @property
    def spawned(self) -> bool:
        return self.spawn_error is None


class ProcessRunner:
    """Run a command to completion with the buffer text on standard input.

    The call blocks until the child exits (or the timeout elapses, in which
    case ``subprocess.run`` kills it). Nothing is retried.
    """

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        input_text: str = "",
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> ExecutionResult:
        if not command:
            raise ValueError("command must not be empty")

        argv = [command, *args]
        logger.debug("Running %s (cwd=%s, timeout=%s)", argv, cwd, timeout)
        try:
            completed = subprocess.run(
                argv,
                input=input_text,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=dict(env) if env is not None else None,
                cwd=cwd,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            logger.debug("%s timed out after %ss", command, timeout)
            return ExecutionResult(exit_code=None, spawn_error=exc)
        except (OSError, ValueError) as exc:
            # ValueError: arguments or environment that cannot be passed to exec.
            logger.debug("Could not start %s: %s", command, exc)
            return ExecutionResult(exit_code=None, spawn_error=exc)

        logger.debug(
            "%s exited with %s (%d bytes stdout, %d bytes stderr)",
            command,
            completed.returncode,
            len(completed.stdout or ""),
            len(completed.stderr or ""),
        )
        return ExecutionResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
