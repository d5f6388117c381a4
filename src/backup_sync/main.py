"""Command line entrypoint."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from contextlib import suppress
from pathlib import Path

import typer
from pydantic import ValidationError

from backup_sync.bootstrap import build_preflight_check, build_process_runner, build_sync_service
from backup_sync.config import Settings
from backup_sync.domain.errors import ConfigurationError
from backup_sync.domain.ports import ProcessRunner
from backup_sync.infrastructure.configuration import load_sync_configuration
from backup_sync.logging_config import configure_logging

PROG_NAME = "backup-sync"
USAGE = f"Usage: {PROG_NAME} FILE"
# Exit status typer uses for missing, extra or unknown arguments.
_USAGE_ERROR_EXIT_CODE = 2

logger = logging.getLogger(__name__)

app = typer.Typer(
    name=PROG_NAME,
    help="Synchronize configured directories with rsync and publish Prometheus metrics.",
    add_completion=False,
)


@app.command(add_help_option=False)
def sync(
    configuration_file: Path = typer.Argument(
        ...,
        metavar="FILE",
        help=(
            "Path to the job configuration properties file. Keys are read under the "
            "'Sync.' prefix (Sync.Host, Sync.Jobs, Sync.<job>.Source, ...); set "
            "BACKUP_SYNC_PROPERTY_PREFIX to read files written with another prefix."
        ),
    ),
) -> None:
    """Run every configured sync job once and exit with the aggregate status."""

    try:
        settings = Settings()
    except ValidationError as exc:
        configure_logging()
        logger.error("Invalid settings: %s", exc)
        raise typer.Exit(code=1) from exc

    configure_logging(settings.log_level)
    try:
        exit_code = asyncio.run(_run_until_terminated(settings, configuration_file))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.error("Interrupted; the current job was aborted and remaining jobs were skipped.")
        exit_code = 1
    raise typer.Exit(code=exit_code)


async def run_sync(
    settings: Settings,
    configuration_file: Path,
    process_runner: ProcessRunner | None = None,
) -> int:
    """Preflight, load configuration, run all jobs and return the exit code."""

    runner = process_runner or build_process_runner(settings)

    tools_ok = await build_preflight_check(settings, runner).run()
    if not tools_ok:
        if settings.preflight_strict:
            logger.error("Preflight checks failed; not running any job.")
            return 1
        logger.warning("Preflight checks failed; continuing anyway.")

    try:
        configuration = load_sync_configuration(
            configuration_file,
            prefix=settings.property_prefix,
        )
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 1

    service = build_sync_service(settings, configuration, process_runner=runner)
    state = await service.run()
    return state.exit_code


async def _run_until_terminated(settings: Settings, configuration_file: Path) -> int:
    task = asyncio.current_task()
    if task is not None:
        with suppress(NotImplementedError, RuntimeError, ValueError):
            asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, task.cancel)
    return await run_sync(settings, configuration_file)


def main(argv: Sequence[str] | None = None) -> int:
    """Parse `argv` and run; usage errors map to exit code 1."""

    try:
        app(args=list(argv) if argv is not None else None, prog_name=PROG_NAME)
    except SystemExit as exc:
        if exc.code is None:
            return 0
        exit_code = exc.code if isinstance(exc.code, int) else 1
        if exit_code == _USAGE_ERROR_EXIT_CODE:
            typer.echo(USAGE, err=True)
            return 1
        return exit_code
    return 0


def run() -> None:
    """Console script entrypoint."""

    sys.exit(main())


__all__ = ["app", "main", "run", "run_sync", "sync"]
