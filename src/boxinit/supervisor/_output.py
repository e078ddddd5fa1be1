"""Console rendering of child process output and lifecycle events.

Output lines look like ``[sshd:42] Server listening on :: port 22``; events
look like ``[haveged] exited pid=10 exit_code=1: Exited with code 1``. Both
are built as rich ``Text`` so that brackets in child output are never read
as console markup.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Literal, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._models import ServiceEventType

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._models import ServiceEvent

NAME_STYLE = Style(color="blue", bold=True)
STDERR_STYLE = Style(color="red", dim=True)
DETAIL_STYLE = Style(dim=True)

EVENT_STYLES: Mapping[ServiceEventType, Style] = MappingProxyType(
    {
        ServiceEventType.LAUNCHED: Style(color="cyan"),
        ServiceEventType.READY: Style(color="green", bold=True),
        ServiceEventType.NOT_READY: Style(color="red", bold=True),
        ServiceEventType.SIGNALED: Style(color="magenta"),
        ServiceEventType.EXITED: Style(color="yellow"),
        ServiceEventType.KILLED: Style(color="red"),
    }
)


def render_line(
    service_name: str,
    pid: int,
    stream: Literal["stdout", "stderr"],
    line: str,
) -> Text:
    """Render one line of child output behind its ``[name:pid]`` tag."""
    return Text.assemble(
        (f"[{service_name}:{pid}]", NAME_STYLE),
        " ",
        (line, STDERR_STYLE if stream == "stderr" else Style()),
    )


def render_event(service_name: str, event: ServiceEvent) -> Text:
    """Render a lifecycle event as a single line."""
    style = EVENT_STYLES.get(event.event_type, Style())
    text = Text.assemble(
        (f"[{service_name}]", NAME_STYLE),
        " ",
        (event.event_type.value.replace("_", " "), style),
    )

    details: list[str] = []
    if event.pid is not None:
        details.append(f"pid={event.pid}")
    if event.exit_code is not None:
        details.append(f"exit_code={event.exit_code}")
    if details:
        _ = text.append(" " + " ".join(details), style=DETAIL_STYLE)

    if event.message:
        _ = text.append(f": {event.message}", style=style)
    return text


@final
class ConcatenatedOutputSink:
    """Interleaves the output of every service on one console."""

    __slots__ = ("_console",)

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    async def write_line(
        self,
        service_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        self._console.print(render_line(service_name, pid, stream, line))

    async def write_event(self, service_name: str, event: ServiceEvent) -> None:
        self._console.print(render_event(service_name, event))
