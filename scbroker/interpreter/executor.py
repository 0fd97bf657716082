# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
Run interpreter source in short-lived, isolated worker processes.

Each :meth:`InterpreterExecutor.execute` call writes the source to its own
scratch file, launches the interpreter on it as a new process-group
leader, and waits for the first of: the worker exiting, the timeout
firing, or the worker's pipes failing.  Whatever happens, the call's
cleanup (timer, registry entry, scratch file, signal hook) runs exactly
once and finishes before the result is returned or raised.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import tempfile
import time
from pathlib import Path

from scbroker.config.models import InterpreterConfig
from scbroker.exceptions import (
    InterpreterError,
    InterpreterExitError,
    InterpreterNotFoundError,
    InterpreterSpawnError,
    InterpreterTimeoutError,
)
from scbroker.interpreter.process_group import ProcessGroupController, force_kill
from scbroker.interpreter.registry import ProcessRegistry
from scbroker.interpreter.signals import TerminationSignals
from scbroker.interpreter.worker import CleanupState, WorkerRecord
from scbroker.logging_config import invocation_context

logger = logging.getLogger(__name__)


def _discard_scratch_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
        logger.debug("Cleaned up temp file: %s", path)
    except OSError as e:
        logger.warning("Failed to remove temp file %s: %s", path, e)


def _write_scratch_file(path: Path, source: str) -> None:
    # "x" refuses to reuse a name that somehow already exists
    with open(path, "x", encoding="utf-8") as f:
        f.write(source)


def _consume_result(task: asyncio.Future) -> None:
    """Retrieve a discarded task's outcome so asyncio does not warn about it."""
    if not task.cancelled():
        task.exception()


def _set_if_pending(fut: asyncio.Future) -> None:
    if not fut.done():
        fut.set_result(None)


class InterpreterExecutor:
    """Execute interpreter source text with a timeout and guaranteed cleanup.

    Args:
        registry: Shared registry every spawned worker is tracked in.
        config: Interpreter launch settings (path, args, timeouts).
        signals: Termination-signal hub; one is created if omitted.
    """

    def __init__(
        self,
        registry: ProcessRegistry,
        *,
        config: InterpreterConfig | None = None,
        signals: TerminationSignals | None = None,
    ) -> None:
        self.registry = registry
        self.config = config if config is not None else InterpreterConfig()
        self.signals = signals if signals is not None else TerminationSignals()

    @property
    def process_group(self) -> ProcessGroupController:
        return self.registry.process_group

    @property
    def in_flight(self) -> int:
        return len(self.registry)

    @property
    def scratch_dir(self) -> Path:
        return Path(self.config.scratch_dir or tempfile.gettempdir())

    async def execute(self, source: str, timeout: float | None = None) -> str:
        """Run *source* to completion and return its captured stdout.

        Args:
            source: Interpreter source text, written verbatim to a scratch file.
            timeout: Wall-clock budget in seconds (default from config).

        Returns:
            The worker's standard output.  Standard error is diagnostic
            only and never causes a failure by itself.

        Raises:
            ValueError: If *source* is empty or *timeout* is not positive.
            InterpreterNotFoundError: The interpreter executable is missing.
            InterpreterSpawnError: The worker could not be started.
            InterpreterTimeoutError: The worker ran past *timeout*; it has
                been killed by the time this is raised.
            InterpreterExitError: The worker exited with a nonzero code.
        """
        if not source or not source.strip():
            raise ValueError("source must not be empty")
        if timeout is None:
            timeout = self.config.default_timeout
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        token = secrets.token_hex(8)
        with invocation_context(token):
            return await self._execute(source, timeout, token)

    async def _execute(self, source: str, timeout: float, token: str) -> str:
        interpreter = self.config.resolve_sclang_path()
        logger.debug("Executing sclang code: %s...", source[:100])

        # Scratch file
        script_path = self.scratch_dir / (
            f"{self.config.scratch_prefix}{time.time_ns()}-{token}{self.config.scratch_suffix}"
        )
        await asyncio.to_thread(_write_scratch_file, script_path, source)
        logger.debug("Created temp file: %s", script_path)

        # Spawn as group leader; a pid must be assigned
        try:
            process = await asyncio.create_subprocess_exec(
                interpreter,
                *self.config.args,
                str(script_path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **self.process_group.start_group(),
            )
        except FileNotFoundError as e:
            _discard_scratch_file(script_path)
            raise InterpreterNotFoundError(interpreter) from e
        except OSError as e:
            _discard_scratch_file(script_path)
            raise InterpreterSpawnError(f"Failed to spawn sclang process: {e}") from e

        if not process.pid:
            _discard_scratch_file(script_path)
            raise InterpreterSpawnError("Failed to spawn sclang process (no PID assigned)")

        # Track and hook termination signals
        record = WorkerRecord(process=process, script_path=script_path)
        self.registry.track(record)
        record.subscription = self.signals.subscribe(
            lambda signum: self._on_termination_signal(record, signum)
        )
        logger.debug("Spawned sclang process %s", record.pid)

        # Timer
        loop = asyncio.get_running_loop()
        timed_out: asyncio.Future[None] = loop.create_future()
        record.timer = loop.call_later(timeout, _set_if_pending, timed_out)

        # Race exit or pipe failure against the timer
        communicate = asyncio.ensure_future(process.communicate())
        try:
            await asyncio.wait({communicate, timed_out}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            logger.warning("Execution of sclang process %s cancelled; killing it", record.pid)
            communicate.cancel()
            communicate.add_done_callback(_consume_result)
            await asyncio.shield(self._start_cleanup(record, kill=True))
            raise

        if not communicate.done():
            # Timed out
            logger.warning("sclang process %s timed out after %gs", record.pid, timeout)
            await self._cleanup(record, kill=True)
            communicate.cancel()
            communicate.add_done_callback(_consume_result)
            error: InterpreterError = InterpreterTimeoutError(timeout)
            record.fail(error)
            raise error

        timed_out.cancel()
        exc = communicate.exception()
        if exc is not None:
            await self._cleanup(record, kill=True)
            error = InterpreterSpawnError(f"Failed to execute sclang: {exc}")
            record.fail(error)
            raise error from exc

        # Exit code decides
        stdout, stderr = communicate.result()
        await self._cleanup(record)
        return self._resolve_exit(record, stdout, stderr)

    def _resolve_exit(self, record: WorkerRecord, stdout: bytes, stderr: bytes) -> str:
        output = stdout.decode("utf-8", errors="replace")
        errors = stderr.decode("utf-8", errors="replace")
        exit_code = record.process.returncode

        if errors:
            # sclang prints warnings and non-fatal errors here
            logger.debug("sclang stderr: %s", errors[:500])

        if exit_code is None or exit_code == 0:
            record.succeed(output, exit_code)
            logger.debug("sclang output: %s...", output[:200])
            return output

        error = InterpreterExitError(exit_code, stderr=errors)
        record.fail(error)
        raise error

    # ── Cleanup ───────────────────────────────────────────────

    def _on_termination_signal(self, record: WorkerRecord, signum: int) -> None:
        logger.warning(
            "Received termination signal %d, cleaning up sclang process %s",
            signum, record.pid,
        )
        self._start_cleanup(record, kill=True)

    def _start_cleanup(self, record: WorkerRecord, *, kill: bool = False) -> asyncio.Task[None]:
        """Start cleanup for *record* once; later callers get the same task."""
        if record.cleanup_task is None:
            record.cleanup_state = CleanupState.IN_FLIGHT
            record.cleanup_task = asyncio.ensure_future(self._run_cleanup(record, kill))
        return record.cleanup_task

    async def _cleanup(self, record: WorkerRecord, *, kill: bool = False) -> None:
        await asyncio.shield(self._start_cleanup(record, kill=kill))

    async def _run_cleanup(self, record: WorkerRecord, kill: bool) -> None:
        try:
            if record.timer is not None:
                record.timer.cancel()
                record.timer = None

            self.registry.untrack(record)

            if kill and force_kill(self.process_group, record.process):
                await self._reap(record)

            _discard_scratch_file(record.script_path)

            if record.subscription is not None:
                self.signals.unsubscribe(record.subscription)
                record.subscription = None
        finally:
            record.cleanup_state = CleanupState.DONE

    async def _reap(self, record: WorkerRecord) -> None:
        """Wait for a killed worker to exit so its pid is released."""
        grace = self.config.kill_grace_period
        try:
            async with asyncio.timeout(grace):
                await record.process.wait()
        except TimeoutError:
            logger.warning("Process %s did not exit within %.1fs of kill", record.pid, grace)
