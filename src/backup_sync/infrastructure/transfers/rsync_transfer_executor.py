"""Retrying rsync transfer executor."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from backup_sync.domain.errors import ProcessExitError, TransferExhaustedError
from backup_sync.domain.execution import JobContext, ProcessCommand
from backup_sync.domain.job_configuration import SyncJob
from backup_sync.domain.ports import ProcessRunner, TransferExecutor

_DEFAULT_MAX_ATTEMPTS = 3
_DEFAULT_RETRY_PAUSE_SECONDS = 3.0

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]

logger = logging.getLogger(__name__)


class RsyncTransferExecutor(TransferExecutor):
    """Synchronize a job's source directory with rsync over ssh.

    - Each job gets up to `max_attempts` attempts with a fixed pause between them.
    - Every failed attempt is kept and reported through `TransferExhaustedError`.
    - Only the successful attempt is timed; its duration replaces the previous one.
    """

    def __init__(
        self,
        process_runner: ProcessRunner,
        *,
        dry_run: bool = False,
        rsync_program: str = "rsync",
        ssh_program: str = "ssh",
        max_attempts: int = _DEFAULT_MAX_ATTEMPTS,
        retry_pause_seconds: float = _DEFAULT_RETRY_PAUSE_SECONDS,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._process_runner = process_runner
        self._dry_run = dry_run
        self._rsync_program = rsync_program
        self._ssh_program = ssh_program
        self._max_attempts = max(1, max_attempts)
        self._retry_pause_seconds = max(0.0, retry_pause_seconds)
        self._sleep = sleep
        self._clock = clock
        self._durations: dict[str, float] = {}

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def last_duration(self, job_name: str) -> float | None:
        """Return the duration of the job's last successful transfer, if any."""

        return self._durations.get(job_name)

    def build_command(self, job: SyncJob) -> ProcessCommand:
        """Map a job to its rsync invocation."""

        arguments = [
            "--archive",
            "--verbose",
            "--compress-level=9",
            "--delete",
            "--hard-links",
            "--sparse",
            "--progress",
            "-e",
            f"{self._ssh_program} -o BatchMode=yes",
        ]
        if self._dry_run:
            arguments.append("--dry-run")
        arguments.append(job.source_path)
        arguments.append(f"{job.target_host}:{job.target_path}/")
        return ProcessCommand(self._rsync_program, tuple(arguments))

    async def transfer(self, job: SyncJob, context: JobContext) -> float:
        """Run rsync for `job`, retrying failed attempts."""

        log = context.bind(logger)
        failures: list[Exception] = []

        for attempt in range(1, self._max_attempts + 1):
            if attempt > 1:
                log.info("Pausing for retry...")
                await self._sleep(self._retry_pause_seconds)

            try:
                duration = await self._transfer_once(job, context)
            except Exception as exc:  # noqa: BLE001
                log.error(
                    "rsync failed (attempt %s of %s): %s",
                    attempt,
                    self._max_attempts,
                    exc,
                )
                failures.append(exc)
                continue

            self._durations[job.name] = duration
            log.info("rsync completed in %.3f seconds.", duration)
            return duration

        log.error("Gave up retrying backup job.")
        raise TransferExhaustedError(job.name, failures) from failures[-1]

    async def _transfer_once(self, job: SyncJob, context: JobContext) -> float:
        """Run one rsync attempt and return its elapsed seconds."""

        command = self.build_command(job)
        context.bind(logger).info("Executing: %s", command)

        started = self._clock()
        result = await self._process_runner.run(command, context)
        finished = self._clock()

        if not result.succeeded:
            raise ProcessExitError(command.program, result.exit_code)
        return max(0.0, finished - started)


__all__ = ["RsyncTransferExecutor"]
