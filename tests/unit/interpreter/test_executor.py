# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
Unit tests for InterpreterExecutor.execute().

Workers run the current Python executable on the scratch file, so every
test drives a real child process through spawn, timeout, kill and
cleanup.  Fakes are used only where a failure cannot be provoked for real
(missing pid, broken pipes).
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scbroker.config import InterpreterConfig
from scbroker.exceptions import (
    InterpreterExitError,
    InterpreterNotFoundError,
    InterpreterSpawnError,
    InterpreterTimeoutError,
)
from scbroker.interpreter import (
    CleanupState,
    InterpreterExecutor,
    ProcessRegistry,
    TerminationSignals,
    WorkerOutcome,
)
import scbroker.interpreter.executor as executor_mod

LOOP_FOREVER = "import time\nwhile True:\n    time.sleep(0.05)\n"

posix_only = pytest.mark.skipif(os.name != "posix", reason="POSIX process semantics")


def _scratch_files(scratch_dir: Path) -> list[Path]:
    return sorted(scratch_dir.glob("sclang-*.scd"))


def _assert_pid_gone(pid: int) -> None:
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


async def _wait_until_tracked(registry: ProcessRegistry, count: int = 1) -> None:
    for _ in range(200):
        if len(registry) >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"expected {count} tracked worker(s), got {len(registry)}")


# ── Successful runs ───────────────────────────────────────


class TestSuccess:
    @pytest.mark.asyncio
    async def test_returns_stdout(self, executor, scratch_dir):
        output = await executor.execute('print("DONE")')
        assert output == "DONE\n"
        assert _scratch_files(scratch_dir) == []
        assert executor.in_flight == 0

    @pytest.mark.asyncio
    async def test_stderr_does_not_fail(self, executor):
        source = 'import sys\nsys.stderr.write("WARNING: noise\\n")\nprint("ok")\n'
        assert await executor.execute(source) == "ok\n"

    @pytest.mark.asyncio
    async def test_source_written_verbatim(self, executor):
        source = 'print(open(__file__, encoding="utf-8").read(), end="")\n# trailing comment\n'
        assert await executor.execute(source) == source

    @pytest.mark.asyncio
    async def test_record_outcome(self, executor, registry):
        with patch.object(registry, "track", wraps=registry.track) as track:
            await executor.execute('print("x")')
        record = track.call_args.args[0]
        assert record.outcome is WorkerOutcome.SUCCEEDED
        assert record.exit_code == 0
        assert record.cleanup_state is CleanupState.DONE
        assert record.subscription is None
        assert record.timer is None

    @pytest.mark.asyncio
    async def test_concurrent_executions_are_isolated(self, executor, scratch_dir):
        outputs = await asyncio.gather(
            *(executor.execute(f"print({i})") for i in range(4))
        )
        assert outputs == [f"{i}\n" for i in range(4)]
        assert _scratch_files(scratch_dir) == []
        assert executor.in_flight == 0
        assert len(executor.signals) == 0


# ── Input validation ──────────────────────────────────────


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("source", ["", "   \n"])
    async def test_empty_source_rejected(self, executor, source, scratch_dir):
        with pytest.raises(ValueError):
            await executor.execute(source)
        assert _scratch_files(scratch_dir) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout", [0, -1.0])
    async def test_non_positive_timeout_rejected(self, executor, timeout):
        with pytest.raises(ValueError):
            await executor.execute('print("x")', timeout=timeout)


# ── Failures ──────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_nonzero_exit(self, executor, scratch_dir):
        source = 'import sys\nsys.stderr.write("boom\\n")\nsys.exit(3)\n'
        with pytest.raises(InterpreterExitError) as exc_info:
            await executor.execute(source)
        assert exc_info.value.exit_code == 3
        assert "boom" in exc_info.value.stderr
        assert exc_info.value.code == "SC_EXECUTION_FAILED"
        assert _scratch_files(scratch_dir) == []
        assert executor.in_flight == 0

    @pytest.mark.asyncio
    async def test_interpreter_not_found(self, registry, interpreter_config, scratch_dir, tmp_path):
        config = interpreter_config.model_copy(
            update={"sclang_path": str(tmp_path / "no-such-sclang")}
        )
        executor = InterpreterExecutor(registry, config=config)

        with pytest.raises(InterpreterNotFoundError) as exc_info:
            await executor.execute('print("x")')

        assert exc_info.value.code == "SCLANG_NOT_FOUND"
        assert "SCLANG_PATH" in str(exc_info.value)
        assert _scratch_files(scratch_dir) == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_missing_pid_is_spawn_failure(self, executor, registry, scratch_dir):
        fake = MagicMock()
        fake.pid = None
        with patch.object(
            executor_mod.asyncio, "create_subprocess_exec", AsyncMock(return_value=fake),
        ):
            with pytest.raises(InterpreterSpawnError, match="no PID"):
                await executor.execute('print("x")')

        assert _scratch_files(scratch_dir) == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_spawn_oserror(self, executor, scratch_dir):
        with patch.object(
            executor_mod.asyncio,
            "create_subprocess_exec",
            AsyncMock(side_effect=PermissionError("not executable")),
        ):
            with pytest.raises(InterpreterSpawnError, match="not executable"):
                await executor.execute('print("x")')
        assert _scratch_files(scratch_dir) == []

    @pytest.mark.asyncio
    async def test_pipe_failure_kills_and_cleans_up(
        self, interpreter_config, scratch_dir, fake_group_factory,
    ):
        group = fake_group_factory()
        registry = ProcessRegistry(process_group=group)
        executor = InterpreterExecutor(registry, config=interpreter_config)

        fake = MagicMock()
        fake.pid = 4242
        fake.returncode = None
        fake.communicate = AsyncMock(side_effect=OSError("broken pipe"))
        fake.wait = AsyncMock(return_value=-9)

        with patch.object(
            executor_mod.asyncio, "create_subprocess_exec", AsyncMock(return_value=fake),
        ):
            with pytest.raises(InterpreterSpawnError, match="broken pipe"):
                await executor.execute('print("x")')

        assert group.group_kills == [4242]
        assert _scratch_files(scratch_dir) == []
        assert len(registry) == 0
        assert len(executor.signals) == 0


# ── Timeout ───────────────────────────────────────────────


class TestTimeout:
    @pytest.mark.asyncio
    async def test_timeout_kills_worker(self, executor, registry, scratch_dir):
        with patch.object(registry, "track", wraps=registry.track) as track:
            start = time.monotonic()
            with pytest.raises(InterpreterTimeoutError) as exc_info:
                await executor.execute(LOOP_FOREVER, timeout=0.1)
            elapsed = time.monotonic() - start

        assert exc_info.value.timeout == 0.1
        assert exc_info.value.code == "SCLANG_TIMEOUT"
        assert "0.1s" in str(exc_info.value)
        assert elapsed < 0.1 + executor.config.kill_grace_period + 1.0

        record = track.call_args.args[0]
        assert record.outcome is WorkerOutcome.FAILED
        assert record.process.returncode is not None
        _assert_pid_gone(record.pid)
        assert _scratch_files(scratch_dir) == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_default_timeout_from_config(self, registry, interpreter_config):
        config = interpreter_config.model_copy(update={"default_timeout": 0.2})
        executor = InterpreterExecutor(registry, config=config)
        with pytest.raises(InterpreterTimeoutError) as exc_info:
            await executor.execute(LOOP_FOREVER)
        assert exc_info.value.timeout == 0.2

    @posix_only
    @pytest.mark.skipif(sys.platform != "linux", reason="inspects /proc")
    @pytest.mark.asyncio
    async def test_timeout_kills_whole_process_group(self, executor, tmp_path):
        pid_file = tmp_path / "grandchild.pid"
        source = (
            "import subprocess, sys, time\n"
            "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)'])\n"
            f"open({str(pid_file)!r}, 'w').write(str(child.pid))\n"
            "while True:\n"
            "    time.sleep(0.05)\n"
        )
        with pytest.raises(InterpreterTimeoutError):
            await executor.execute(source, timeout=1.5)

        grandchild = int(pid_file.read_text())
        for _ in range(100):
            stat = Path(f"/proc/{grandchild}/stat")
            try:
                state = stat.read_text().rsplit(")", 1)[1].split()[0]
            except (OSError, IndexError):
                break
            if state in ("Z", "X"):
                break
            await asyncio.sleep(0.02)
        else:
            pytest.fail(f"grandchild {grandchild} survived the worker timeout")


# ── Cleanup exactly once ──────────────────────────────────


class TestCleanupOnce:
    @posix_only
    @pytest.mark.asyncio
    async def test_signal_during_run_cleans_up_once(self, executor, registry, scratch_dir):
        with (
            patch.object(
                executor_mod, "_discard_scratch_file",
                wraps=executor_mod._discard_scratch_file,
            ) as discard,
            patch.object(registry, "untrack", wraps=registry.untrack) as untrack,
        ):
            task = asyncio.ensure_future(executor.execute(LOOP_FOREVER, timeout=10))
            await _wait_until_tracked(registry)

            executor.signals.deliver(signal.SIGTERM)
            executor.signals.deliver(signal.SIGTERM)

            with pytest.raises(InterpreterExitError) as exc_info:
                await asyncio.wait_for(task, timeout=5)

        assert exc_info.value.exit_code == -signal.SIGKILL
        assert discard.call_count == 1
        assert untrack.call_count == 1
        assert _scratch_files(scratch_dir) == []
        assert len(registry) == 0
        assert len(executor.signals) == 0

    @pytest.mark.asyncio
    async def test_exit_and_timer_in_same_window(self, executor, registry):
        with (
            patch.object(
                executor_mod, "_discard_scratch_file",
                wraps=executor_mod._discard_scratch_file,
            ) as discard,
            patch.object(registry, "untrack", wraps=registry.untrack) as untrack,
        ):
            # Worker exits right around its deadline; either outcome is fine
            # as long as cleanup happened exactly once.
            try:
                await executor.execute("import time\ntime.sleep(0.2)\n", timeout=0.2)
            except InterpreterTimeoutError:
                pass
        assert discard.call_count == 1
        assert untrack.call_count == 1
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_exit_and_signal_in_same_window(self, executor, registry, scratch_dir):
        original = executor._start_cleanup
        delivered = []

        def racing(record, *, kill=False):
            # SIGTERM lands just as the exit path begins its cleanup
            if not delivered:
                delivered.append(record)
                executor.signals.deliver(signal.SIGTERM)
            return original(record, kill=kill)

        with (
            patch.object(
                executor_mod, "_discard_scratch_file",
                wraps=executor_mod._discard_scratch_file,
            ) as discard,
            patch.object(registry, "untrack", wraps=registry.untrack) as untrack,
            patch.object(executor, "_start_cleanup", side_effect=racing),
        ):
            output = await executor.execute('print("x")\n')

        assert output == "x\n"
        assert len(delivered) == 1
        assert discard.call_count == 1
        assert untrack.call_count == 1
        assert _scratch_files(scratch_dir) == []
        assert len(registry) == 0
        assert len(executor.signals) == 0

    @pytest.mark.asyncio
    async def test_cancel_kills_worker(self, executor, registry, scratch_dir):
        with patch.object(registry, "track", wraps=registry.track) as track:
            task = asyncio.ensure_future(executor.execute(LOOP_FOREVER, timeout=10))
            await _wait_until_tracked(registry)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        record = track.call_args.args[0]
        await asyncio.wait_for(record.cleanup_task, timeout=5)
        assert record.cleanup_state is CleanupState.DONE
        assert record.process.returncode is not None
        assert _scratch_files(scratch_dir) == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_kill_all_during_run(self, executor, registry, scratch_dir):
        task = asyncio.ensure_future(executor.execute(LOOP_FOREVER, timeout=10))
        await _wait_until_tracked(registry)

        await registry.kill_all()

        with pytest.raises(InterpreterExitError):
            await asyncio.wait_for(task, timeout=5)
        assert _scratch_files(scratch_dir) == []
        assert len(registry) == 0


# ── Configuration ─────────────────────────────────────────


class TestConfig:
    def test_scratch_dir_defaults_to_tempdir(self, registry):
        import tempfile

        executor = InterpreterExecutor(registry, config=InterpreterConfig())
        assert executor.scratch_dir == Path(tempfile.gettempdir())

    def test_process_group_comes_from_registry(self, fake_group_factory):
        group = fake_group_factory()
        executor = InterpreterExecutor(ProcessRegistry(process_group=group))
        assert executor.process_group is group
        assert isinstance(executor.signals, TerminationSignals)

    def test_empty_signal_hub_is_shared(self, registry):
        hub = TerminationSignals()
        assert len(hub) == 0
        executor = InterpreterExecutor(registry, signals=hub)
        assert executor.signals is hub

    def test_explicit_config_is_kept(self, registry):
        config = InterpreterConfig(default_timeout=3)
        executor = InterpreterExecutor(registry, config=config)
        assert executor.config is config
