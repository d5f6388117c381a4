"""Ship rendered metrics files to the remote metrics directory with scp."""

from __future__ import annotations

import logging
from pathlib import Path

from backup_sync.domain.errors import MetricsShipError, ProcessRunError
from backup_sync.domain.execution import JobContext, ProcessCommand
from backup_sync.domain.job_configuration import SyncJob
from backup_sync.domain.ports import MetricsShipper, ProcessRunner

logger = logging.getLogger(__name__)


class ScpMetricsShipper(MetricsShipper):
    """Copy metrics files in batch mode. Failures are not retried."""

    def __init__(self, process_runner: ProcessRunner, scp_program: str = "scp") -> None:
        self._process_runner = process_runner
        self._scp_program = scp_program

    def build_command(self, job: SyncJob, metrics_file: Path) -> ProcessCommand:
        return ProcessCommand(
            self._scp_program,
            (
                "-o",
                "BatchMode=yes",
                str(metrics_file),
                f"{job.target_host}:{job.target_metrics_dir}",
            ),
        )

    async def ship(self, job: SyncJob, metrics_file: Path, context: JobContext) -> None:
        log = context.bind(logger)
        command = self.build_command(job, metrics_file)
        log.info("Executing: %s", command)

        try:
            result = await self._process_runner.run(command, context)
        except ProcessRunError as exc:
            raise MetricsShipError(f"Unable to copy {metrics_file}: {exc}") from exc

        if not result.succeeded:
            log.error("scp failed!")
            raise MetricsShipError(
                f"scp of {metrics_file} to {job.target_host}:{job.target_metrics_dir} "
                f"exited with status {result.exit_code}."
            )


__all__ = ["ScpMetricsShipper"]
