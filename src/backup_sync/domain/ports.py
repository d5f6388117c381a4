"""Ports for process execution, transfer and metrics publication."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from backup_sync.domain.execution import JobContext, ProcessCommand, ProcessResult
from backup_sync.domain.job_configuration import SyncJob


class ProcessRunner(Protocol):
    """Run an external program while draining and logging its output."""

    async def run(
        self,
        command: ProcessCommand,
        context: JobContext,
        *,
        timeout_seconds: float | None = None,
    ) -> ProcessResult:
        """Run `command` to completion and return its exit status."""


class TransferExecutor(Protocol):
    """Directory synchronization port."""

    async def transfer(self, job: SyncJob, context: JobContext) -> float:
        """Synchronize one job and return the successful attempt's duration in seconds."""

    def last_duration(self, job_name: str) -> float | None:
        """Return the most recent successful duration recorded for a job."""


class MetricsWriter(Protocol):
    """Render and persist a job's metrics document."""

    async def write(self, job: SyncJob, duration_seconds: float, context: JobContext) -> Path:
        """Write the metrics file and return its final path."""


class MetricsShipper(Protocol):
    """Copy a rendered metrics file to the job's remote metrics directory."""

    async def ship(self, job: SyncJob, metrics_file: Path, context: JobContext) -> None:
        """Transfer the metrics file."""


__all__ = [
    "MetricsShipper",
    "MetricsWriter",
    "ProcessRunner",
    "TransferExecutor",
]
