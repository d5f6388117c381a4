"""Async subprocess runner that drains stdout/stderr concurrently into the log."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from backup_sync.domain.errors import ProcessLaunchError, ProcessTimeoutError, StreamDrainError
from backup_sync.domain.execution import (
    JobContext,
    JobLogAdapter,
    ProcessCommand,
    ProcessResult,
    StreamName,
)
from backup_sync.domain.ports import ProcessRunner

_DEFAULT_READ_CHUNK_BYTES = 64 * 1024
_DEFAULT_MAX_LINE_BYTES = 1024 * 1024
_LINE_TERMINATORS = (b"\n", b"\r")

logger = logging.getLogger(__name__)


def split_complete_lines(buffer: bytes) -> tuple[list[bytes], bytes]:
    """Split buffered bytes into complete lines and an unterminated remainder.

    Lines end with LF, CR or CRLF. A trailing CR stays in the remainder
    because the matching LF may arrive with the next chunk.
    """

    pieces = buffer.splitlines(keepends=True)
    if not pieces:
        return [], b""

    remainder = b""
    last = pieces[-1]
    if not last.endswith(_LINE_TERMINATORS) or last.endswith(b"\r"):
        remainder = pieces.pop()
    return [piece.rstrip(b"\r\n") for piece in pieces], remainder


class AsyncProcessRunner(ProcessRunner):
    """Run external programs with two concurrent stream drains.

    - stdout and stderr are each read by their own task.
    - Every line is logged once, in order per stream, tagged with the job.
    - `run` returns only after the process exited and both drains finished.
    - Only the exit code decides success; output is never inspected.
    """

    def __init__(
        self,
        read_chunk_bytes: int = _DEFAULT_READ_CHUNK_BYTES,
        encoding: str = "utf-8",
        max_line_bytes: int = _DEFAULT_MAX_LINE_BYTES,
    ) -> None:
        self._read_chunk_bytes = max(1, read_chunk_bytes)
        self._max_line_bytes = max(1, max_line_bytes)
        self._encoding = encoding

    async def run(
        self,
        command: ProcessCommand,
        context: JobContext,
        *,
        timeout_seconds: float | None = None,
    ) -> ProcessResult:
        """Run `command`, drain both streams and return the exit status."""

        log = context.bind(logger)
        try:
            process = await asyncio.create_subprocess_exec(
                command.program,
                *command.arguments,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            log.error("Unable to execute %s: %s", command.program, exc)
            raise ProcessLaunchError(command.program, str(exc)) from exc

        assert process.stdout is not None
        assert process.stderr is not None
        drains = [
            asyncio.create_task(
                self._drain(process.stdout, StreamName.STDOUT, command.program, log),
                name=f"drain-{StreamName.STDOUT}-{process.pid}",
            ),
            asyncio.create_task(
                self._drain(process.stderr, StreamName.STDERR, command.program, log),
                name=f"drain-{StreamName.STDERR}-{process.pid}",
            ),
        ]

        try:
            exit_code = await asyncio.wait_for(process.wait(), timeout=timeout_seconds)
        except TimeoutError:
            log.error(
                "%s did not exit within %s seconds; killing it.",
                command.program,
                timeout_seconds,
            )
            await self._kill_and_reap(process, drains)
            raise ProcessTimeoutError(command.program, timeout_seconds or 0.0) from None
        except asyncio.CancelledError:
            log.warning("Cancelled while waiting for %s; killing it.", command.program)
            await self._kill_and_reap(process, drains)
            raise

        outcomes = await asyncio.gather(*drains, return_exceptions=True)
        line_counts: dict[StreamName, int] = {}
        for stream, outcome in zip((StreamName.STDOUT, StreamName.STDERR), outcomes):
            if isinstance(outcome, BaseException):
                raise StreamDrainError(command.program, stream, str(outcome)) from outcome
            line_counts[stream] = outcome

        return ProcessResult(
            exit_code=exit_code,
            stdout_lines=line_counts[StreamName.STDOUT],
            stderr_lines=line_counts[StreamName.STDERR],
        )

    async def _drain(
        self,
        reader: asyncio.StreamReader,
        stream: StreamName,
        program: str,
        log: JobLogAdapter,
    ) -> int:
        """Log every line of one stream until EOF and return the line count."""

        count = 0
        buffer = b""
        try:
            while chunk := await reader.read(self._read_chunk_bytes):
                lines, buffer = split_complete_lines(buffer + chunk)
                for line in lines:
                    self._log_line(log, program, stream, line)
                    count += 1
                # An unterminated line longer than the limit is logged in pieces.
                if len(buffer) > self._max_line_bytes and not buffer.endswith(b"\r"):
                    self._log_line(log, program, stream, buffer)
                    count += 1
                    buffer = b""
            if buffer:
                self._log_line(log, program, stream, buffer.rstrip(b"\r\n"))
                count += 1
        except Exception as exc:
            log.error("Failed to read %s: %s", stream, exc)
            # Keep the pipe empty so the child cannot block on a full buffer.
            with suppress(Exception):
                while await reader.read(self._read_chunk_bytes):
                    pass
            raise
        return count

    def _log_line(
        self,
        log: JobLogAdapter,
        program: str,
        stream: StreamName,
        line: bytes,
    ) -> None:
        log.info("%s (%s): %s", program, stream, line.decode(self._encoding, errors="replace"))

    async def _kill_and_reap(
        self,
        process: asyncio.subprocess.Process,
        drains: list[asyncio.Task[int]],
    ) -> None:
        """Kill a still-running process and wait for it and its drains to finish."""

        if process.returncode is None:
            with suppress(ProcessLookupError):
                process.kill()
        await process.wait()
        await asyncio.gather(*drains, return_exceptions=True)


__all__ = ["AsyncProcessRunner", "split_complete_lines"]
