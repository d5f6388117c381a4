"""Runtime models for one sync invocation."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any


class StreamName(StrEnum):
    """Subprocess output streams."""

    STDOUT = "stdout"
    STDERR = "stderr"


class JobStage(StrEnum):
    """Stages a job passes through, in order."""

    PENDING = "pending"
    TRANSFER = "transfer"
    METRICS_WRITE = "metrics write"
    METRICS_SHIP = "metrics ship"
    COMPLETED = "completed"


class JobLogAdapter(logging.LoggerAdapter):
    """Prefix every message with the job it was emitted for."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        job_name = self.extra["job"] if self.extra else ""
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("job", job_name)
        kwargs["extra"] = extra
        return f"[{job_name}] {msg}", kwargs


@dataclass(slots=True, frozen=True)
class JobContext:
    """Correlation context passed into every call made on behalf of a job."""

    job_name: str

    def bind(self, logger: logging.Logger) -> JobLogAdapter:
        """Return a logger adapter that tags records with this job."""

        return JobLogAdapter(logger, {"job": self.job_name})


@dataclass(slots=True, frozen=True)
class ProcessCommand:
    """External program invocation."""

    program: str
    arguments: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.arguments]

    def __str__(self) -> str:
        return str(self.argv)


@dataclass(slots=True, frozen=True)
class ProcessResult:
    """Outcome of a completed subprocess whose output was fully drained."""

    exit_code: int
    stdout_lines: int = 0
    stderr_lines: int = 0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(slots=True)
class JobRun:
    """Transient state for one job within one invocation."""

    job_name: str
    stage: JobStage = JobStage.PENDING
    duration_seconds: float | None = None
    metrics_file: Path | None = None
    failed: bool = False
    error: str | None = None

    def mark_failed(self, error: BaseException) -> None:
        self.failed = True
        self.error = str(error) or type(error).__name__


@dataclass(slots=True)
class RunState:
    """Process-wide state for one invocation.

    `failed` is sticky: once any job fails it is never cleared.
    """

    current_job: str | None = None
    failed: bool = False
    runs: list[JobRun] = field(default_factory=list)

    def record(self, run: JobRun) -> None:
        self.runs.append(run)
        if run.failed:
            self.failed = True

    @property
    def execution_order(self) -> list[str]:
        return [run.job_name for run in self.runs]

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


__all__ = [
    "JobContext",
    "JobLogAdapter",
    "JobRun",
    "JobStage",
    "ProcessCommand",
    "ProcessResult",
    "RunState",
    "StreamName",
]
