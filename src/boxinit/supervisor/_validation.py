"""Validation of service spec sequences.

Runs before any process is launched so that a malformed sequence never
starts half of its services.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from boxinit.exceptions import ServiceSpecError

from ._models import ReadinessKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._models import ServiceSpec


def _validate_spec(spec: ServiceSpec) -> None:
    """Check the fields of a single spec.

    Raises:
        ServiceSpecError: If the spec cannot be launched or probed.
    """
    if not spec.name:
        msg = "Service name must not be empty"
        raise ServiceSpecError(msg)

    if not spec.command or not spec.command[0]:
        msg = f"Service '{spec.name}' has an empty command"
        raise ServiceSpecError(msg, service_name=spec.name)

    if spec.shutdown_timeout < 0:
        msg = f"Service '{spec.name}' has a negative shutdown timeout"
        raise ServiceSpecError(msg, service_name=spec.name)

    if spec.foreground:
        return

    check = spec.readiness
    if check.timeout <= 0:
        msg = f"Service '{spec.name}' readiness timeout must be positive"
        raise ServiceSpecError(msg, service_name=spec.name)

    if check.delay < 0:
        msg = f"Service '{spec.name}' readiness delay must not be negative"
        raise ServiceSpecError(msg, service_name=spec.name)

    # The probe sleeps for the delay inside the timeout window
    if check.kind != ReadinessKind.FILE and check.delay >= check.timeout:
        msg = (
            f"Service '{spec.name}' readiness delay ({check.delay:g}s) "
            f"must be shorter than its timeout ({check.timeout:g}s)"
        )
        raise ServiceSpecError(msg, service_name=spec.name)

    if check.kind == ReadinessKind.FILE:
        if check.path is None:
            msg = f"Service '{spec.name}' uses a file probe without a path"
            raise ServiceSpecError(msg, service_name=spec.name)
        if check.interval <= 0:
            msg = f"Service '{spec.name}' file probe interval must be positive"
            raise ServiceSpecError(msg, service_name=spec.name)


def validate_specs(specs: Sequence[ServiceSpec]) -> tuple[ServiceSpec, ...]:
    """Validate an ordered sequence of service specs.

    The sequence must be non-empty, use unique names, and contain exactly
    one foreground spec, placed last.

    Args:
        specs: Specs in startup order.

    Returns:
        The specs as an immutable tuple.

    Raises:
        ServiceSpecError: If any constraint is violated.
    """
    ordered = tuple(specs)
    if not ordered:
        msg = "At least one service is required"
        raise ServiceSpecError(msg)

    seen: set[str] = set()
    for spec in ordered:
        _validate_spec(spec)
        if spec.name in seen:
            msg = f"Duplicate service name '{spec.name}'"
            raise ServiceSpecError(msg, service_name=spec.name)
        seen.add(spec.name)

    foreground = [spec.name for spec in ordered if spec.foreground]
    if not foreground:
        msg = "Exactly one service must be marked foreground, found none"
        raise ServiceSpecError(msg)
    if len(foreground) > 1:
        names = ", ".join(foreground)
        msg = f"Exactly one service must be marked foreground, found: {names}"
        raise ServiceSpecError(msg)
    if not ordered[-1].foreground:
        msg = f"Foreground service '{foreground[0]}' must be the last service"
        raise ServiceSpecError(msg, service_name=foreground[0])

    return ordered
