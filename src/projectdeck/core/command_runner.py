"""External command execution."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class CommandError(RuntimeError):
    """A command exited non-zero, could not start, or timed out."""

    def __init__(
        self,
        argv: tuple[str, ...],
        cwd: Path,
        output: str,
        *,
        returncode: int | None = None,
        timed_out: bool = False,
    ) -> None:
        self.argv = argv
        self.cwd = cwd
        self.output = output
        self.returncode = returncode
        self.timed_out = timed_out
        reason = "timed out" if timed_out else "failed"
        super().__init__(f"{' '.join(argv)} {reason}: {output.strip()}")


class CommandRunner(Protocol):
    """Runs a command in a working directory and returns its stdout."""

    async def run(self, cwd: Path, *argv: str) -> str: ...


class SubprocessCommandRunner:
    """Run commands with ``asyncio`` subprocesses under a bounded timeout."""

    def __init__(self, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._timeout_seconds = timeout_seconds

    async def run(self, cwd: Path, *argv: str) -> str:
        logger.debug("Running %s in %s", " ".join(argv), cwd)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CommandError(argv, cwd, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout_seconds
            )
        except TimeoutError as exc:
            process.kill()
            await process.wait()
            raise CommandError(
                argv, cwd, f"no result after {self._timeout_seconds}s", timed_out=True
            ) from exc

        output = stdout.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise CommandError(
                argv,
                cwd,
                output + stderr.decode("utf-8", errors="replace"),
                returncode=process.returncode,
            )
        return output
