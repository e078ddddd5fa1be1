from __future__ import annotations

import subprocess
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import anyio
import pytest

from boxinit.supervisor import ReadinessCheck, ReadinessKind
from boxinit.supervisor._readiness import has_failed, wait_for_exit, wait_ready

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    import anyio.abc


@asynccontextmanager
async def spawn(code: str) -> AsyncIterator[anyio.abc.Process]:
    process = await anyio.open_process(
        [sys.executable, "-c", code],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    try:
        yield process
    finally:
        if process.returncode is None:
            process.kill()
        _ = await wait_for_exit(process)


class TestReadinessCheckConstructors:
    def test_default_is_alive_check(self) -> None:
        check = ReadinessCheck()

        assert check.kind == ReadinessKind.ALIVE
        assert check.timeout == 10.0
        assert check.delay == 0.0

    def test_fixed_delay_timeout_exceeds_delay(self) -> None:
        check = ReadinessCheck.fixed_delay(2.0)

        assert check.kind == ReadinessKind.DELAY
        assert check.delay == 2.0
        assert check.timeout > check.delay

    def test_file_exists(self, tmp_path: Path) -> None:
        check = ReadinessCheck.file_exists(tmp_path / "ready", timeout=3.0)

        assert check.kind == ReadinessKind.FILE
        assert check.path == tmp_path / "ready"
        assert check.timeout == 3.0

    def test_process_alive_settle(self) -> None:
        check = ReadinessCheck.process_alive(settle=0.5, timeout=2.0)

        assert check.kind == ReadinessKind.ALIVE
        assert check.delay == 0.5
        assert check.timeout == 2.0


@pytest.mark.anyio
class TestWaitForExit:
    async def test_returns_exit_code(self) -> None:
        async with spawn("raise SystemExit(5)") as process:
            assert await wait_for_exit(process) == 5
            assert has_failed(process)

    async def test_clean_exit_is_not_failure(self) -> None:
        async with spawn("pass") as process:
            assert await wait_for_exit(process) == 0
            assert not has_failed(process)

    async def test_does_not_wait_for_inherited_pipes(self) -> None:
        # The grandchild keeps stdout open after the child exits
        code = (
            "import subprocess, sys\n"
            "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(2)'])"
        )
        process = await anyio.open_process(
            [sys.executable, "-c", code],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
        )
        with anyio.fail_after(5):
            assert await wait_for_exit(process) == 0
        if process.stdout is not None:
            await process.stdout.aclose()


@pytest.mark.anyio
class TestWaitReady:
    async def test_delay_passes_for_running_process(self) -> None:
        async with spawn("import time; time.sleep(30)") as process:
            assert await wait_ready(ReadinessCheck.fixed_delay(0.1), process)

    async def test_delay_passes_for_clean_exit(self) -> None:
        async with spawn("pass") as process:
            _ = await wait_for_exit(process)
            assert await wait_ready(ReadinessCheck.fixed_delay(0.1), process)

    async def test_delay_fails_early_on_error_exit(self) -> None:
        async with spawn("raise SystemExit(1)") as process:
            with anyio.fail_after(3):
                assert not await wait_ready(ReadinessCheck.fixed_delay(10.0), process)

    async def test_alive_passes_for_running_process(self) -> None:
        async with spawn("import time; time.sleep(30)") as process:
            check = ReadinessCheck.process_alive(settle=0.1)
            assert await wait_ready(check, process)

    async def test_alive_fails_for_exited_process(self) -> None:
        async with spawn("pass") as process:
            _ = await wait_for_exit(process)
            assert not await wait_ready(ReadinessCheck.process_alive(), process)

    async def test_alive_settle_longer_than_timeout_fails(self) -> None:
        async with spawn("import time; time.sleep(30)") as process:
            check = ReadinessCheck.process_alive(settle=5.0, timeout=0.2)
            assert not await wait_ready(check, process)

    async def test_file_passes_when_file_appears(self, tmp_path: Path) -> None:
        marker = tmp_path / "ready"
        code = (
            "import pathlib, sys, time\n"
            "time.sleep(0.2)\n"
            f"pathlib.Path({str(marker)!r}).touch()\n"
            "time.sleep(30)"
        )
        async with spawn(code) as process:
            check = ReadinessCheck.file_exists(marker, timeout=5.0, interval=0.05)
            assert await wait_ready(check, process)

    async def test_file_passes_after_daemon_forks(self, tmp_path: Path) -> None:
        marker = tmp_path / "ready"
        code = f"import pathlib; pathlib.Path({str(marker)!r}).touch()"
        async with spawn(code) as process:
            check = ReadinessCheck.file_exists(marker, timeout=5.0, interval=0.05)
            assert await wait_ready(check, process)

    async def test_file_times_out(self, tmp_path: Path) -> None:
        async with spawn("import time; time.sleep(30)") as process:
            check = ReadinessCheck.file_exists(tmp_path / "never", timeout=0.2)
            with anyio.fail_after(3):
                assert not await wait_ready(check, process)

    async def test_file_fails_early_on_error_exit(self, tmp_path: Path) -> None:
        async with spawn("raise SystemExit(3)") as process:
            check = ReadinessCheck.file_exists(tmp_path / "never", timeout=10.0)
            with anyio.fail_after(3):
                assert not await wait_ready(check, process)

    async def test_file_without_path_fails(self) -> None:
        async with spawn("import time; time.sleep(30)") as process:
            check = ReadinessCheck(kind=ReadinessKind.FILE, timeout=1.0)
            assert not await wait_ready(check, process)
