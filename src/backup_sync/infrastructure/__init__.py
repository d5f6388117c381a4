"""Infrastructure layer public API."""

from backup_sync.infrastructure.configuration import load_sync_configuration
from backup_sync.infrastructure.metrics import PrometheusMetricsWriter, ScpMetricsShipper
from backup_sync.infrastructure.processes import AsyncProcessRunner, ToolPreflightCheck
from backup_sync.infrastructure.transfers import RsyncTransferExecutor

__all__ = [
    "AsyncProcessRunner",
    "PrometheusMetricsWriter",
    "RsyncTransferExecutor",
    "ScpMetricsShipper",
    "ToolPreflightCheck",
    "load_sync_configuration",
]
