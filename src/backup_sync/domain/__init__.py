"""Domain public API."""

from backup_sync.domain.errors import (
    ConfigurationError,
    MetricsShipError,
    MetricsWriteError,
    ProcessExitError,
    ProcessLaunchError,
    ProcessRunError,
    ProcessTimeoutError,
    StreamDrainError,
    SyncError,
    TransferExhaustedError,
)
from backup_sync.domain.execution import (
    JobContext,
    JobLogAdapter,
    JobRun,
    JobStage,
    ProcessCommand,
    ProcessResult,
    RunState,
    StreamName,
)
from backup_sync.domain.job_configuration import SyncConfiguration, SyncJob
from backup_sync.domain.ports import (
    MetricsShipper,
    MetricsWriter,
    ProcessRunner,
    TransferExecutor,
)

__all__ = [
    "ConfigurationError",
    "JobContext",
    "JobLogAdapter",
    "JobRun",
    "JobStage",
    "MetricsShipError",
    "MetricsShipper",
    "MetricsWriteError",
    "MetricsWriter",
    "ProcessCommand",
    "ProcessExitError",
    "ProcessLaunchError",
    "ProcessResult",
    "ProcessRunError",
    "ProcessRunner",
    "ProcessTimeoutError",
    "RunState",
    "StreamDrainError",
    "StreamName",
    "SyncConfiguration",
    "SyncError",
    "SyncJob",
    "TransferExecutor",
    "TransferExhaustedError",
]
