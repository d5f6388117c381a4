"""Domain exceptions for sync job execution."""

from __future__ import annotations

from collections.abc import Sequence


class SyncError(Exception):
    """Base class for sync errors."""


class ConfigurationError(SyncError):
    """Raised when the job configuration or runtime settings are invalid."""


class ProcessRunError(SyncError):
    """Base class for failures running an external program."""

    def __init__(self, program: str, message: str) -> None:
        super().__init__(message)
        self.program = program


class ProcessLaunchError(ProcessRunError):
    """Raised when an external program cannot be started at all."""

    def __init__(self, program: str, reason: str) -> None:
        super().__init__(program, f"Unable to launch '{program}': {reason}")


class StreamDrainError(ProcessRunError):
    """Raised when reading a subprocess output stream fails."""

    def __init__(self, program: str, stream: str, reason: str) -> None:
        super().__init__(program, f"Failed to read {stream} of '{program}': {reason}")
        self.stream = stream


class ProcessTimeoutError(ProcessRunError):
    """Raised when a subprocess does not exit within its deadline."""

    def __init__(self, program: str, timeout_seconds: float) -> None:
        super().__init__(
            program,
            f"'{program}' did not exit within {timeout_seconds:g} seconds.",
        )
        self.timeout_seconds = timeout_seconds


class ProcessExitError(ProcessRunError):
    """Raised by callers when a subprocess exits with a non-zero status."""

    def __init__(self, program: str, exit_code: int) -> None:
        super().__init__(program, f"'{program}' exited with status {exit_code}.")
        self.exit_code = exit_code


class TransferExhaustedError(SyncError):
    """Raised when every transfer attempt for a job has failed.

    `causes` keeps the failure of each attempt in order so the full retry
    history survives for diagnosis.
    """

    def __init__(self, job_name: str, causes: Sequence[BaseException]) -> None:
        if not causes:
            raise ValueError("TransferExhaustedError requires at least one cause.")
        self.job_name = job_name
        self.causes: tuple[BaseException, ...] = tuple(causes)
        history = "; ".join(
            f"attempt {index}: {cause}" for index, cause in enumerate(self.causes, start=1)
        )
        super().__init__(
            f"Transfer for job '{job_name}' failed after {len(self.causes)} attempt(s) "
            f"({history})"
        )

    @property
    def primary(self) -> BaseException:
        """Return the failure of the first attempt."""

        return self.causes[0]


class MetricsWriteError(SyncError):
    """Raised when rendering or persisting a metrics file fails."""


class MetricsShipError(SyncError):
    """Raised when copying a metrics file to its remote target fails."""


__all__ = [
    "ConfigurationError",
    "MetricsShipError",
    "MetricsWriteError",
    "ProcessExitError",
    "ProcessLaunchError",
    "ProcessRunError",
    "ProcessTimeoutError",
    "StreamDrainError",
    "SyncError",
    "TransferExhaustedError",
]
