from __future__ import annotations

import asyncio
from collections.abc import MutableSequence
from datetime import UTC, datetime
from pathlib import Path

import pytest

from backup_sync.application.services import SyncService
from backup_sync.domain.errors import MetricsWriteError
from backup_sync.domain.execution import JobContext, JobStage, ProcessCommand, ProcessResult
from backup_sync.domain.job_configuration import SyncConfiguration, SyncJob
from backup_sync.domain.ports import (
    MetricsShipper,
    MetricsWriter,
    ProcessRunner,
    TransferExecutor,
)
from backup_sync.infrastructure.metrics import PrometheusMetricsWriter, ScpMetricsShipper
from backup_sync.infrastructure.transfers import RsyncTransferExecutor


class HostProcessRunner(ProcessRunner):
    """Runner double that fails rsync for selected jobs and records every call."""

    def __init__(self, failing_jobs: set[str] | None = None) -> None:
        self._failing_jobs = failing_jobs or set()
        self.calls: list[tuple[str, ProcessCommand]] = []

    async def run(
        self,
        command: ProcessCommand,
        context: JobContext,
        *,
        timeout_seconds: float | None = None,
    ) -> ProcessResult:
        _ = timeout_seconds
        self.calls.append((context.job_name, command))
        if command.program == "rsync" and context.job_name in self._failing_jobs:
            return ProcessResult(exit_code=23)
        return ProcessResult(exit_code=0)

    def programs_for(self, job_name: str) -> list[str]:
        return [command.program for name, command in self.calls if name == job_name]


class RecordingShipper(MetricsShipper):
    """Shipper double that records shipped files."""

    def __init__(self) -> None:
        self.shipped: list[tuple[str, Path]] = []

    async def ship(self, job: SyncJob, metrics_file: Path, context: JobContext) -> None:
        _ = context
        self.shipped.append((job.name, metrics_file))


class FailingWriter(MetricsWriter):
    """Writer double that always fails."""

    async def write(self, job: SyncJob, duration_seconds: float, context: JobContext) -> Path:
        _ = (duration_seconds, context)
        raise MetricsWriteError(f"cannot write metrics for {job.name}")


async def _no_sleep(seconds: float) -> None:
    _ = seconds


def _reverse(names: MutableSequence[str]) -> None:
    names.reverse()


def _configuration(metrics_dir: Path, *job_names: str) -> SyncConfiguration:
    return SyncConfiguration(
        host="web01",
        jobs=tuple(
            SyncJob(
                name=name,
                source_path=f"/srv/{name}",
                source_metrics_dir=metrics_dir,
                target_host="backup.example.com",
                target_path=f"/backups/{name}",
                target_metrics_dir="/var/lib/node_exporter/remote",
            )
            for name in job_names
        ),
    )


def _service(
    configuration: SyncConfiguration,
    runner: ProcessRunner,
    metrics_writer: MetricsWriter | None = None,
    metrics_shipper: MetricsShipper | None = None,
    shuffle=_reverse,
) -> SyncService:
    return SyncService(
        configuration=configuration,
        transfer_executor=RsyncTransferExecutor(runner, sleep=_no_sleep),
        metrics_writer=metrics_writer
        or PrometheusMetricsWriter(
            host=configuration.host,
            clock=lambda: datetime(2026, 3, 1, tzinfo=UTC),
        ),
        metrics_shipper=metrics_shipper or ScpMetricsShipper(runner),
        shuffle=shuffle,
    )


def test_failing_job_does_not_stop_remaining_jobs(tmp_path: Path) -> None:
    stale_alpha = tmp_path / "backup_web01_alpha.prom"
    stale_alpha.write_text("stale alpha metrics\n", encoding="utf-8")
    runner = HostProcessRunner(failing_jobs={"alpha"})
    service = _service(_configuration(tmp_path, "alpha", "beta"), runner, shuffle=lambda names: None)

    state = asyncio.run(service.run())

    assert state.failed is True
    assert state.exit_code == 1
    assert state.current_job is None
    assert state.execution_order == ["alpha", "beta"]

    alpha, beta = state.runs
    assert alpha.failed is True
    assert alpha.stage is JobStage.TRANSFER
    assert "3 attempt(s)" in (alpha.error or "")
    assert runner.programs_for("alpha") == ["rsync", "rsync", "rsync"]
    assert stale_alpha.read_text(encoding="utf-8") == "stale alpha metrics\n"

    assert beta.failed is False
    assert beta.stage is JobStage.COMPLETED
    assert beta.metrics_file == tmp_path / "backup_web01_beta.prom"
    assert "backup_duration_last" in beta.metrics_file.read_text(encoding="utf-8")
    assert runner.programs_for("beta") == ["rsync", "scp"]
    scp_command = runner.calls[-1][1]
    assert scp_command.arguments[-2] == str(beta.metrics_file)


def test_all_jobs_succeeding_exit_zero(tmp_path: Path) -> None:
    runner = HostProcessRunner()
    shipper = RecordingShipper()
    service = _service(_configuration(tmp_path, "alpha", "beta"), runner, metrics_shipper=shipper)

    state = asyncio.run(service.run())

    assert state.failed is False
    assert state.exit_code == 0
    assert state.execution_order == ["beta", "alpha"]
    assert [name for name, _ in shipper.shipped] == ["beta", "alpha"]


def test_empty_configuration_succeeds(tmp_path: Path) -> None:
    service = _service(_configuration(tmp_path), HostProcessRunner())

    state = asyncio.run(service.run())

    assert state.runs == []
    assert state.exit_code == 0


def test_metrics_write_failure_skips_shipping(tmp_path: Path) -> None:
    runner = HostProcessRunner()
    shipper = RecordingShipper()
    service = _service(
        _configuration(tmp_path, "alpha"),
        runner,
        metrics_writer=FailingWriter(),
        metrics_shipper=shipper,
    )

    state = asyncio.run(service.run())

    assert state.exit_code == 1
    assert state.runs[0].stage is JobStage.METRICS_WRITE
    assert state.runs[0].error == "cannot write metrics for alpha"
    assert shipper.shipped == []


def test_metrics_ship_failure_fails_only_that_job(tmp_path: Path) -> None:
    class FailingScpRunner(HostProcessRunner):
        """Runner double whose scp exits non-zero for alpha."""

        async def run(
            self,
            command: ProcessCommand,
            context: JobContext,
            *,
            timeout_seconds: float | None = None,
        ) -> ProcessResult:
            result = await super().run(command, context, timeout_seconds=timeout_seconds)
            if command.program == "scp" and context.job_name == "alpha":
                return ProcessResult(exit_code=1)
            return result

    runner = FailingScpRunner()
    service = _service(_configuration(tmp_path, "alpha", "beta"), runner, shuffle=lambda names: None)

    state = asyncio.run(service.run())

    assert state.exit_code == 1
    assert [run.failed for run in state.runs] == [True, False]
    assert state.runs[0].stage is JobStage.METRICS_SHIP
    assert runner.programs_for("alpha") == ["rsync", "scp"]


def test_execution_order_is_a_fresh_permutation(tmp_path: Path) -> None:
    names = [f"job_{index}" for index in range(6)]
    service = SyncService(
        configuration=_configuration(tmp_path, *names),
        transfer_executor=RsyncTransferExecutor(HostProcessRunner(), sleep=_no_sleep),
        metrics_writer=FailingWriter(),
        metrics_shipper=RecordingShipper(),
    )

    orders = {tuple(service.execution_order()) for _ in range(50)}

    assert all(sorted(order) == names for order in orders)
    assert len(orders) > 1
    assert service.configuration.job_names == names


class BlockingTransferExecutor(TransferExecutor):
    """Transfer double that blocks until cancelled."""

    def __init__(self) -> None:
        self.transferred: list[str] = []
        self.started = asyncio.Event()

    async def transfer(self, job: SyncJob, context: JobContext) -> float:
        _ = context
        self.transferred.append(job.name)
        self.started.set()
        await asyncio.Event().wait()
        return 0.0

    def last_duration(self, job_name: str) -> float | None:
        _ = job_name
        return None


def test_cancellation_propagates_and_skips_remaining_jobs(tmp_path: Path) -> None:
    shipper = RecordingShipper()

    async def scenario() -> BlockingTransferExecutor:
        executor = BlockingTransferExecutor()
        service = SyncService(
            configuration=_configuration(tmp_path, "alpha", "beta"),
            transfer_executor=executor,
            metrics_writer=FailingWriter(),
            metrics_shipper=shipper,
            shuffle=lambda names: None,
        )
        task = asyncio.create_task(service.run())
        await asyncio.wait_for(executor.started.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return executor

    executor = asyncio.run(scenario())

    assert executor.transferred == ["alpha"]
    assert shipper.shipped == []
