"""Sync job orchestration use-case service."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, MutableSequence

from backup_sync.domain.execution import JobContext, JobRun, JobStage, RunState
from backup_sync.domain.job_configuration import SyncConfiguration, SyncJob
from backup_sync.domain.ports import MetricsShipper, MetricsWriter, TransferExecutor

Shuffle = Callable[[MutableSequence[str]], None]

logger = logging.getLogger(__name__)


class SyncService:
    """Run every configured job once, in random order, isolating failures.

    Each job runs transfer, then metrics write, then metrics ship. An error in
    any stage fails that job only; the run continues with the next job and the
    returned `RunState` reports the aggregate outcome.
    """

    def __init__(
        self,
        configuration: SyncConfiguration,
        transfer_executor: TransferExecutor,
        metrics_writer: MetricsWriter,
        metrics_shipper: MetricsShipper,
        shuffle: Shuffle = random.shuffle,
    ) -> None:
        self._configuration = configuration
        self._transfer_executor = transfer_executor
        self._metrics_writer = metrics_writer
        self._metrics_shipper = metrics_shipper
        self._shuffle = shuffle

    @property
    def configuration(self) -> SyncConfiguration:
        return self._configuration

    def execution_order(self) -> list[str]:
        """Return a fresh random permutation of the configured job names."""

        names = self._configuration.job_names
        self._shuffle(names)
        return names

    async def run(self) -> RunState:
        """Execute all jobs sequentially and return the aggregate run state."""

        state = RunState()
        order = self.execution_order()
        logger.info("Running %s job(s) in order: %s", len(order), ", ".join(order) or "-")

        try:
            for job_name in order:
                state.current_job = job_name
                state.record(await self._execute_job(self._configuration.job(job_name)))
        finally:
            state.current_job = None

        failed = [run.job_name for run in state.runs if run.failed]
        if failed:
            logger.error("%s of %s job(s) failed: %s", len(failed), len(state.runs), ", ".join(failed))
        else:
            logger.info("All %s job(s) succeeded.", len(state.runs))
        return state

    async def _execute_job(self, job: SyncJob) -> JobRun:
        context = JobContext(job_name=job.name)
        log = context.bind(logger)
        job_run = JobRun(job_name=job.name)
        log.info("Executing")

        try:
            job_run.stage = JobStage.TRANSFER
            job_run.duration_seconds = await self._transfer_executor.transfer(job, context)

            job_run.stage = JobStage.METRICS_WRITE
            duration = self._transfer_executor.last_duration(job.name) or 0.0
            job_run.metrics_file = await self._metrics_writer.write(job, duration, context)

            job_run.stage = JobStage.METRICS_SHIP
            await self._metrics_shipper.ship(job, job_run.metrics_file, context)
        except asyncio.CancelledError:
            log.warning("Cancelled during %s.", job_run.stage)
            raise
        except Exception as exc:  # noqa: BLE001
            job_run.mark_failed(exc)
            log.error("Failed during %s: %s", job_run.stage, job_run.error)
            return job_run

        job_run.stage = JobStage.COMPLETED
        log.info("Completed")
        return job_run


__all__ = ["SyncService"]
