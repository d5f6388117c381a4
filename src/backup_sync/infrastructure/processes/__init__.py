"""Subprocess execution adapters."""

from backup_sync.infrastructure.processes.async_process_runner import (
    AsyncProcessRunner,
    split_complete_lines,
)
from backup_sync.infrastructure.processes.preflight import ToolCheck, ToolPreflightCheck

__all__ = ["AsyncProcessRunner", "ToolCheck", "ToolPreflightCheck", "split_complete_lines"]
