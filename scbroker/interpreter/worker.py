# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
Bookkeeping record for a single interpreter worker.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from scbroker.exceptions import InterpreterError
from scbroker.interpreter.signals import Subscription


# ── Worker State ───────────────────────────────────────────────────

class CleanupState(Enum):
    """Progress of a worker's one-time cleanup."""
    NOT_RUN = "not_run"
    IN_FLIGHT = "in_flight"
    DONE = "done"


class WorkerOutcome(Enum):
    """Result of a worker invocation."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# ── Worker Record ──────────────────────────────────────────────────

@dataclass(eq=False)
class WorkerRecord:
    """One spawned worker and every resource created on its behalf.

    Records are hashed by identity so that they can live in the registry
    even while their mutable fields change.  A record is never reused.
    """

    process: asyncio.subprocess.Process
    script_path: Path
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    cleanup_state: CleanupState = CleanupState.NOT_RUN
    cleanup_task: asyncio.Task[None] | None = None
    timer: asyncio.TimerHandle | None = None
    subscription: Subscription | None = None

    outcome: WorkerOutcome = WorkerOutcome.PENDING
    output: str | None = None
    exit_code: int | None = None
    error: InterpreterError | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    def succeed(self, output: str, exit_code: int | None) -> None:
        self.outcome = WorkerOutcome.SUCCEEDED
        self.output = output
        self.exit_code = exit_code

    def fail(self, error: InterpreterError) -> None:
        self.outcome = WorkerOutcome.FAILED
        self.error = error
