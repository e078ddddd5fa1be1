"""Check command: validate the configuration and show the startup plan."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table

from boxinit.supervisor import ReadinessCheck, ReadinessKind

from ._shared import load_config_or_exit

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console

    from boxinit.supervisor import ServiceSpec


def describe_readiness(check: ReadinessCheck) -> str:
    """Render a readiness check as a short human-readable string."""
    match check.kind:
        case ReadinessKind.DELAY:
            return f"delay {check.delay:g}s"
        case ReadinessKind.FILE:
            return f"file {check.path} (timeout {check.timeout:g}s)"
        case ReadinessKind.ALIVE:
            if check.delay:
                return f"alive after {check.delay:g}s (timeout {check.timeout:g}s)"
            return f"alive (timeout {check.timeout:g}s)"


def _role(spec: ServiceSpec) -> str:
    if spec.foreground:
        return "foreground"
    return "required" if spec.required else "optional"


def build_plan_table(specs: tuple[ServiceSpec, ...]) -> Table:
    """Build the startup plan table, one row per service in launch order."""
    table = Table(title="Startup plan")
    table.add_column("#", justify="right")
    table.add_column("Service")
    table.add_column("Role")
    table.add_column("Command")
    table.add_column("Readiness")

    for index, spec in enumerate(specs, start=1):
        table.add_row(
            str(index),
            spec.name,
            _role(spec),
            " ".join(spec.command),
            "-" if spec.foreground else describe_readiness(spec.readiness),
        )
    return table


def check_command(
    *,
    config: Path | None = None,
    strict: bool = False,
    console: Console | None = None,
    error_console: Console | None = None,
) -> None:
    """Validate the configuration and print the startup plan."""
    loaded, specs = load_config_or_exit(config, strict=strict, console=error_console)

    if console is None:
        from rich.console import Console

        console = Console()

    source = loaded.config_file
    console.print(f"Config: {source if source is not None else 'built-in defaults'}")
    layers = [s.name.value for s in loaded.sources if s.exists]
    console.print(f"Sources: {', '.join(layers)}")
    console.print(build_plan_table(specs))
