"""Shared CLI utilities for commands.

This module provides common utilities used across CLI command implementations:
- Standardized exit codes
- Configuration loading with error reporting
- Console utilities for error handling
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never

from rich.markup import escape

from boxinit.config import Config
from boxinit.exceptions import ConfigError, ServiceSpecError

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console

    from boxinit.supervisor import ServiceSpec

__all__ = [
    "ExitCode",
    "exit_with_error",
    "get_error_console",
    "load_config_or_exit",
]


class ExitCode(IntEnum):
    """Exit codes of boxinit CLI commands that never reach the supervisor."""

    SUCCESS = 0
    CONFIG_ERROR = 2


def get_error_console() -> Console:
    """Get a Rich console configured for error output to stderr.

    Returns:
        Console instance writing to stderr.
    """
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.CONFIG_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Args:
        message: The error message to display.
        code: The exit code to use (defaults to CONFIG_ERROR).
        console: Optional Rich console for output. If not provided,
            a new stderr console will be created.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    raise SystemExit(code)


def load_config_or_exit(
    config_path: Path | None,
    *,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    strict: bool = False,
    console: Console | None = None,
) -> tuple[Config, tuple[ServiceSpec, ...]]:
    """Load the configuration and build the service list.

    Any problem is fatal: nothing has been launched yet, so the command
    reports it and exits with ExitCode.CONFIG_ERROR.

    Args:
        config_path: Explicit config file (--config).
        cli_overrides: Values from command-line options.
        strict: Reject unknown keys.
        console: Console for error output.

    Returns:
        The loaded configuration and its validated service specs.
    """
    try:
        config = Config.load(
            config_path=config_path, cli_overrides=cli_overrides, strict=strict
        )
        specs = config.to_specs()
    except (FileNotFoundError, ConfigError, ServiceSpecError) as e:
        exit_with_error(str(e), console=console)
    except OSError as e:
        exit_with_error(f"Failed to load config: {e}", console=console)
    return config, specs
