"""Interface between the supervisor and whatever displays service output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ._models import ServiceEvent


@runtime_checkable
class OutputSink(Protocol):
    """Receives captured child output and lifecycle events.

    Services only call the sink for output they capture; a service running
    with ``capture_output=False`` writes straight to the inherited streams
    and only its events reach the sink.
    """

    async def write_line(
        self,
        service_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        """Handle one line of output, without its trailing newline."""
        ...

    async def write_event(self, service_name: str, event: ServiceEvent) -> None:
        """Handle a lifecycle event of ``service_name``."""
        ...
