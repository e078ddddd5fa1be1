"""Run command: start the configured services and supervise the foreground."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import anyio

from boxinit.supervisor import ConcatenatedOutputSink, Supervisor
from boxinit.utils import create_supervisor_logger

from ._shared import load_config_or_exit

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console

    from boxinit.config import Config
    from boxinit.supervisor import ServiceSpec


def _logging_overrides(
    log_level: str | None,
    log_format: str | None,
    log_file: Path | None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    if log_level is not None:
        overrides["level"] = log_level
    if log_format is not None:
        overrides["format"] = log_format
    if log_file is not None:
        overrides["file"] = str(log_file)
    return {"logging": overrides} if overrides else {}


async def run_supervisor(
    config: Config,
    specs: tuple[ServiceSpec, ...],
    console: Console | None = None,
) -> int:
    """Run the supervisor for a loaded configuration.

    Args:
        config: The loaded configuration.
        specs: Service specs built from ``config``.
        console: Console for service output and lifecycle events.

    Returns:
        The supervisor exit code.
    """
    logger = create_supervisor_logger(
        level=config.logging.level.value,
        log_format=config.logging.format.value,  # type: ignore[arg-type]
        log_file=config.logging.file or None,
    )
    if config.config_file is not None:
        logger.debug("loaded config", path=str(config.config_file))

    supervisor = Supervisor(
        specs,
        ConcatenatedOutputSink(console),
        logger=logger,
        reap_orphans=config.supervisor.reap_orphans.value,  # type: ignore[arg-type]
        reap_interval=config.supervisor.reap_interval,
        orphan_grace=config.supervisor.orphan_grace,
    )
    return await supervisor.run()


def run_command(
    *,
    config: Path | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
    log_file: Path | None = None,
    console: Console | None = None,
    error_console: Console | None = None,
) -> int:
    """Load configuration and run the supervisor.

    Returns:
        The supervisor exit code.
    """
    loaded, specs = load_config_or_exit(
        config,
        cli_overrides=_logging_overrides(log_level, log_format, log_file),
        console=error_console,
    )
    return anyio.run(run_supervisor, loaded, specs, console)
