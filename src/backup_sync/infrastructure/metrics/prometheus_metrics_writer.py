"""Prometheus textfile metrics writer with atomic publication."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import suppress
from datetime import UTC, datetime
from pathlib import Path

from prometheus_client.core import GaugeMetricFamily, Metric

from backup_sync.domain.errors import MetricsWriteError
from backup_sync.domain.execution import JobContext
from backup_sync.domain.job_configuration import SyncJob
from backup_sync.domain.ports import MetricsWriter

_LABEL_NAMES = ("host", "directory")
_HELP_ESCAPES = str.maketrans({"\\": "\\\\", "\n": "\\n"})
_LABEL_VALUE_ESCAPES = str.maketrans({"\\": "\\\\", "\n": "\\n", '"': '\\"'})
_TEMP_SUFFIX = ".tmp"

Clock = Callable[[], datetime]

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class PrometheusMetricsWriter(MetricsWriter):
    """Write `backup_<host>_<job>.prom` files for a node-exporter textfile collector.

    The document is written to a `.tmp` sibling first and then renamed over the
    final name, so a scraper never reads a partially written file.
    """

    def __init__(self, host: str, clock: Clock = _utc_now) -> None:
        self._host = host
        self._clock = clock

    def metrics_path(self, job: SyncJob) -> Path:
        """Return the final metrics file path for a job."""

        return (job.source_metrics_dir / f"backup_{self._host}_{job.name}.prom").absolute()

    def collect(self, job: SyncJob, duration_seconds: float) -> list[Metric]:
        """Build the two gauge families reported for one job."""

        label_values = [self._host, job.source_path]

        time_last = GaugeMetricFamily(
            "backup_time_last",
            "The last time a backup was received",
            labels=_LABEL_NAMES,
        )
        time_last.add_metric(label_values, int(self._clock().timestamp()))

        duration_last = GaugeMetricFamily(
            "backup_duration_last",
            "The duration of the last backup",
            labels=_LABEL_NAMES,
        )
        duration_last.add_metric(label_values, int(max(0.0, duration_seconds)))

        return [time_last, duration_last]

    def render(self, job: SyncJob, duration_seconds: float) -> str:
        """Render the exposition text for one job.

        Values are whole seconds printed as integers and labels keep the
        `host`, `directory` order, so line-oriented readers of the textfile
        see a fixed format.
        """

        lines: list[str] = []
        for metric in self.collect(job, duration_seconds):
            lines.append(f"# HELP {metric.name} {metric.documentation.translate(_HELP_ESCAPES)}")
            lines.append(f"# TYPE {metric.name} {metric.type}")
            for sample in metric.samples:
                labels = ",".join(
                    f'{name}="{value.translate(_LABEL_VALUE_ESCAPES)}"'
                    for name, value in sample.labels.items()
                )
                lines.append(f"{sample.name}{{{labels}}} {int(sample.value)}")
        return "\n".join(lines) + "\n"

    async def write(self, job: SyncJob, duration_seconds: float, context: JobContext) -> Path:
        """Render and atomically persist the metrics file, returning its path."""

        output_file = self.metrics_path(job)
        text = self.render(job, duration_seconds)
        await asyncio.to_thread(self._write_atomically, output_file, text)
        context.bind(logger).info("Wrote metrics to %s", output_file)
        return output_file

    def _write_atomically(self, output_file: Path, text: str) -> None:
        temp_file = output_file.with_name(output_file.name + _TEMP_SUFFIX)
        try:
            with temp_file.open("w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_file, output_file)
        except OSError as exc:
            with suppress(OSError):
                temp_file.unlink(missing_ok=True)
            raise MetricsWriteError(f"Unable to write metrics file {output_file}: {exc}") from exc


__all__ = ["PrometheusMetricsWriter"]
