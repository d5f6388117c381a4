"""Application bootstrap/wiring."""

from __future__ import annotations

import logging

from backup_sync.application.services import SyncService
from backup_sync.config import Settings
from backup_sync.domain.job_configuration import SyncConfiguration
from backup_sync.domain.ports import ProcessRunner
from backup_sync.infrastructure.metrics import PrometheusMetricsWriter, ScpMetricsShipper
from backup_sync.infrastructure.processes import AsyncProcessRunner, ToolPreflightCheck
from backup_sync.infrastructure.transfers import RsyncTransferExecutor

logger = logging.getLogger(__name__)


def build_process_runner(settings: Settings) -> ProcessRunner:
    """Create the subprocess runner shared by every component."""

    return AsyncProcessRunner(
        read_chunk_bytes=settings.process_read_chunk_bytes,
        max_line_bytes=settings.process_max_line_bytes,
    )


def build_preflight_check(
    settings: Settings,
    process_runner: ProcessRunner | None = None,
) -> ToolPreflightCheck:
    """Create the tool probe used before any job runs."""

    return ToolPreflightCheck(
        process_runner=process_runner or build_process_runner(settings),
        ssh_program=settings.ssh_program,
        rsync_program=settings.rsync_program,
        timeout_seconds=settings.preflight_timeout_seconds,
    )


def build_sync_service(
    settings: Settings,
    configuration: SyncConfiguration,
    process_runner: ProcessRunner | None = None,
) -> SyncService:
    """Compose service graph."""

    runner = process_runner or build_process_runner(settings)
    if configuration.dry_run:
        logger.info("Dry run enabled; rsync will not move any data.")

    return SyncService(
        configuration=configuration,
        transfer_executor=RsyncTransferExecutor(
            runner,
            dry_run=configuration.dry_run,
            rsync_program=settings.rsync_program,
            ssh_program=settings.ssh_program,
            max_attempts=settings.transfer_max_attempts,
            retry_pause_seconds=settings.transfer_retry_pause_seconds,
        ),
        metrics_writer=PrometheusMetricsWriter(host=configuration.host),
        metrics_shipper=ScpMetricsShipper(runner, scp_program=settings.scp_program),
    )


__all__ = ["build_preflight_check", "build_process_runner", "build_sync_service"]
