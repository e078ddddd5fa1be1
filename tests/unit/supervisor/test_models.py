import dataclasses

import pytest

from boxinit.supervisor import (
    ReadinessCheck,
    ServiceEvent,
    ServiceEventType,
    ServiceSpec,
    ServiceState,
    ServiceStatus,
)


class TestServiceSpec:
    def test_defaults(self) -> None:
        spec = ServiceSpec(name="haveged", command=("/usr/sbin/haveged", "-F"))

        assert spec.required is True
        assert spec.foreground is False
        assert spec.readiness == ReadinessCheck()
        assert spec.cwd is None
        assert spec.env == {}
        assert spec.shutdown_timeout == 5.0
        assert spec.capture_output is True

    def test_is_frozen(self) -> None:
        spec = ServiceSpec(name="sshd", command=("/usr/sbin/sshd",))

        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.name = "other"  # pyright: ignore[reportAttributeAccessIssue]


class TestServiceStatus:
    def test_starts_pending(self) -> None:
        status = ServiceStatus()

        assert status.state == ServiceState.PENDING
        assert status.pid is None
        assert status.exit_code is None
        assert status.failure_reason is None


class TestServiceEvent:
    def test_optional_fields_default_to_none(self) -> None:
        event = ServiceEvent(
            service_name="sshd",
            event_type=ServiceEventType.LAUNCHED,
            timestamp="2026-01-01T00:00:00Z",
        )

        assert event.pid is None
        assert event.exit_code is None
        assert event.message is None

    def test_state_values_are_lowercase_names(self) -> None:
        assert [s.value for s in ServiceState] == [
            "pending",
            "starting",
            "ready",
            "running",
            "exited",
            "failed",
        ]
