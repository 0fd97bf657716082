# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
Interpreter worker execution package.

Runs interpreter source in ephemeral, isolated subprocesses and keeps a
registry of in-flight workers so they can all be terminated at shutdown.
"""

from __future__ import annotations

from scbroker.interpreter.executor import InterpreterExecutor
from scbroker.interpreter.process_group import (
    DirectOnlyProcessGroup,
    PosixProcessGroup,
    ProcessGroupController,
    default_process_group,
    force_kill,
)
from scbroker.interpreter.registry import ProcessRegistry
from scbroker.interpreter.signals import Subscription, TerminationSignals
from scbroker.interpreter.worker import CleanupState, WorkerOutcome, WorkerRecord

__all__ = [
    "CleanupState",
    "DirectOnlyProcessGroup",
    "InterpreterExecutor",
    "PosixProcessGroup",
    "ProcessGroupController",
    "ProcessRegistry",
    "Subscription",
    "TerminationSignals",
    "WorkerOutcome",
    "WorkerRecord",
    "default_process_group",
    "force_kill",
]
