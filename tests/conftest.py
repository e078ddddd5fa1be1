"""Shared test fixtures for boxinit tests."""

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

import pytest

from boxinit.supervisor import ServiceEvent, ServiceEventType

PythonCommand = Callable[[str], tuple[str, ...]]


@dataclass
class RecordingSink:
    """OutputSink that keeps everything it receives."""

    lines: list[tuple[str, str, str]] = field(default_factory=list)
    events: list[ServiceEvent] = field(default_factory=list)

    async def write_line(
        self,
        service_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        self.lines.append((service_name, stream, line))

    async def write_event(self, service_name: str, event: ServiceEvent) -> None:
        self.events.append(event)

    def event_types(self, service_name: str) -> list[ServiceEventType]:
        return [e.event_type for e in self.events if e.service_name == service_name]

    def timeline(self, *types: ServiceEventType) -> list[tuple[str, ServiceEventType]]:
        return [
            (e.service_name, e.event_type) for e in self.events if e.event_type in types
        ]

    def output(self, service_name: str) -> list[str]:
        return [line for name, _, line in self.lines if name == service_name]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def py() -> PythonCommand:
    """Return a function building a command that runs Python code."""

    def _command(code: str) -> tuple[str, ...]:
        return (sys.executable, "-c", code)

    return _command


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
