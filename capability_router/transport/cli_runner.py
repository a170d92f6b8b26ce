"""Bounded subprocess execution for the command-line transport.

The runner never goes through a shell: the binary and its arguments are
passed as an argument vector. Each call is bounded by a timeout and by a
combined stdout+stderr byte limit; the child is killed when either bound is
exceeded.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from dataclasses import dataclass
from typing import List, Optional, Sequence

from capability_router.errors.exceptions import CliOutputLimitError, CliSpawnError, CliTimeoutError

_READ_CHUNK = 64 * 1024


@dataclass(frozen=True)
class CliRunResult:
    exit_code: int
    stdout: str
    stderr: str


class SafeCliRunner:
    """
    Runs one subprocess at a time per call with timeout and output bounds.

    Args:
        timeout: Default per-call timeout in seconds.
        max_output_bytes: Upper bound on combined stdout+stderr bytes.
    """

    def __init__(self, *, timeout: float = 10.0, max_output_bytes: int = 10 * 1024 * 1024) -> None:
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes
        self._logger = logging.getLogger(__name__)

    async def run(self, binary: str, args: Sequence[str], timeout: Optional[float] = None) -> CliRunResult:
        limit = timeout if timeout is not None else self.timeout
        argv: List[str] = [binary, *args]
        command = shlex.join(argv)
        self._logger.debug("SafeCliRunner.run: %s (timeout=%ss)", command, limit)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CliSpawnError(command, e) from e

        total = 0
        stdout = bytearray()
        stderr = bytearray()

        async def _drain(stream: Optional[asyncio.StreamReader], sink: bytearray) -> None:
            nonlocal total
            if stream is None:
                return
            while True:
                chunk = await stream.read(_READ_CHUNK)
                if not chunk:
                    return
                total += len(chunk)
                if total > self.max_output_bytes:
                    raise CliOutputLimitError(self.max_output_bytes)
                sink.extend(chunk)

        async def _collect() -> int:
            await asyncio.gather(_drain(proc.stdout, stdout), _drain(proc.stderr, stderr))
            return await proc.wait()

        try:
            exit_code = await asyncio.wait_for(_collect(), timeout=limit)
        except asyncio.TimeoutError as e:
            await self._kill(proc)
            raise CliTimeoutError(command, limit) from e
        except CliOutputLimitError:
            await self._kill(proc)
            raise

        result = CliRunResult(
            exit_code=exit_code,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        self._logger.debug("SafeCliRunner.run: %s exited with %d", argv[0], exit_code)
        return result

    async def _kill(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
