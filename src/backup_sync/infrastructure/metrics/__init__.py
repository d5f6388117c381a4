"""Metrics rendering and publication adapters."""

from backup_sync.infrastructure.metrics.prometheus_metrics_writer import PrometheusMetricsWriter
from backup_sync.infrastructure.metrics.scp_metrics_shipper import ScpMetricsShipper

__all__ = ["PrometheusMetricsWriter", "ScpMetricsShipper"]
