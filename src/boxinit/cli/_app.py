"""The command-line interface for boxinit."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated, Literal

from cyclopts import App, Parameter
from rich.console import Console

from ._check import check_command
from ._run import run_command
from ._shared import ExitCode

LogLevelName = Literal["debug", "info", "warning", "error"]
LogFormatName = Literal["text", "json"]

ConfigOption = Annotated[
    Path | None, Parameter(name="--config", help="Path to config file")
]


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Create the boxinit CLI application.

    Args:
        console: Console for service output and command output.
        error_console: Console for error messages.
        exit_on_error: Exit on argument parsing errors.

    Returns:
        The cyclopts application.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)

    app = App(
        name="boxinit",
        help="Container init that sequences and supervises system services.",
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    def run(
        *,
        config: ConfigOption = None,
        log_level: Annotated[
            LogLevelName | None, Parameter(help="Log level threshold")
        ] = None,
        log_format: Annotated[
            LogFormatName | None, Parameter(help="Diagnostic log format")
        ] = None,
        log_file: Annotated[
            Path | None, Parameter(help="Also append diagnostics to this file")
        ] = None,
    ) -> None:
        """Start the configured services and supervise the foreground service.

        Exits with the foreground service's exit code.

        Args:
            config: Explicit path to config file.
            log_level: Log level threshold.
            log_format: Diagnostic log format.
            log_file: File diagnostics are appended to.
        """
        exit_code = run_command(
            config=config,
            log_level=log_level,
            log_format=log_format,
            log_file=log_file,
            console=console,
            error_console=error_console,
        )
        raise SystemExit(exit_code)

    def check(
        *,
        config: ConfigOption = None,
        strict: Annotated[bool, Parameter(help="Reject unknown keys")] = False,
    ) -> None:
        """Validate the configuration and print the startup plan.

        Args:
            config: Explicit path to config file.
            strict: Reject unknown keys.
        """
        check_command(
            config=config,
            strict=strict,
            console=console,
            error_console=error_console,
        )
        raise SystemExit(ExitCode.SUCCESS)

    app.default(run)
    app.command(run, name="run")
    app.command(check, name="check")
    return app


def main() -> None:
    """Default entrypoint for the `boxinit` CLI."""
    app = create_app()
    app()
