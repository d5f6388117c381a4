"""Preflight checks that the external transfer tools can be executed."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from backup_sync.domain.errors import ProcessRunError
from backup_sync.domain.execution import JobContext, ProcessCommand
from backup_sync.domain.ports import ProcessRunner

_PREFLIGHT_CONTEXT = JobContext(job_name="preflight")
_DEFAULT_TIMEOUT_SECONDS = 5.0

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ToolCheck:
    """One tool and the harmless invocation used to probe it."""

    tool: str
    command: ProcessCommand


class ToolPreflightCheck:
    """Probe `ssh` and `rsync` before any job runs.

    A failing probe is logged as a warning and the run continues, so a broken
    tool surfaces as job failures rather than an aborted run. Callers that want
    a hard gate inspect the return value of `run`.
    """

    def __init__(
        self,
        process_runner: ProcessRunner,
        ssh_program: str = "ssh",
        rsync_program: str = "rsync",
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._process_runner = process_runner
        self._timeout_seconds = timeout_seconds
        self._checks = (
            ToolCheck(tool="ssh", command=ProcessCommand(ssh_program, ("-V",))),
            ToolCheck(tool="rsync", command=ProcessCommand(rsync_program, ("--version",))),
        )

    async def run(self) -> bool:
        """Run every probe and return True when all of them passed."""

        results = [await self._check(check) for check in self._checks]
        return all(results)

    async def _check(self, check: ToolCheck) -> bool:
        log = _PREFLIGHT_CONTEXT.bind(logger)
        try:
            result = await self._process_runner.run(
                check.command,
                _PREFLIGHT_CONTEXT,
                timeout_seconds=self._timeout_seconds,
            )
        except ProcessRunError as exc:
            log.warning("Unable to execute %s: %s", check.tool, exc)
            return False

        if not result.succeeded:
            log.warning(
                "Unable to execute %s: %s exited with status %s.",
                check.tool,
                check.command.program,
                result.exit_code,
            )
            return False

        log.info("%s appears to be functional.", check.tool)
        return True


__all__ = ["ToolCheck", "ToolPreflightCheck"]
