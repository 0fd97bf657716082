# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
Platform abstraction for process-group signaling.

Workers are launched as leaders of their own process group so that
anything they spawn can be terminated together with them.  The executor
and registry only talk to :class:`ProcessGroupController`; tests swap in a
fake implementation.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import os
import signal
import subprocess
from typing import Any

logger = logging.getLogger(__name__)


class ProcessGroupController(abc.ABC):
    """Start and kill worker process groups."""

    @abc.abstractmethod
    def start_group(self) -> dict[str, Any]:
        """Extra ``create_subprocess_exec`` kwargs making the worker a group leader."""

    @abc.abstractmethod
    def kill_group(self, process: asyncio.subprocess.Process) -> None:
        """Kill the worker's whole process group.  Raises OSError on failure."""

    @abc.abstractmethod
    def kill_direct(self, process: asyncio.subprocess.Process) -> None:
        """Kill only the worker itself.  Raises OSError on failure."""


class PosixProcessGroup(ProcessGroupController):
    """New session per worker; SIGKILL to the group id (== worker pid)."""

    def start_group(self) -> dict[str, Any]:
        return {"start_new_session": True}

    def kill_group(self, process: asyncio.subprocess.Process) -> None:
        os.killpg(process.pid, signal.SIGKILL)

    def kill_direct(self, process: asyncio.subprocess.Process) -> None:
        process.kill()


class DirectOnlyProcessGroup(ProcessGroupController):
    """Platforms without POSIX process groups (Windows).

    Group kill always fails so that callers fall back to a direct kill.
    """

    def start_group(self) -> dict[str, Any]:
        flags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
        return {"creationflags": flags} if flags else {}

    def kill_group(self, process: asyncio.subprocess.Process) -> None:
        raise OSError("process-group kill is not supported on this platform")

    def kill_direct(self, process: asyncio.subprocess.Process) -> None:
        process.kill()


def default_process_group() -> ProcessGroupController:
    if os.name == "posix":
        return PosixProcessGroup()
    return DirectOnlyProcessGroup()


def force_kill(
    controller: ProcessGroupController,
    process: asyncio.subprocess.Process,
) -> bool:
    """Kill *process* and its group, falling back to a direct kill.

    Returns True if a kill was delivered, False if the worker had already
    exited or could not be signalled.
    """
    if process.returncode is not None:
        return False

    try:
        controller.kill_group(process)
        logger.debug("Sent SIGKILL to process group %s", process.pid)
        return True
    except OSError as e:
        logger.debug(
            "Process group kill failed for %s (%s), trying direct kill",
            process.pid, e,
        )

    try:
        controller.kill_direct(process)
        return True
    except ProcessLookupError:
        logger.debug("Process %s already terminated", process.pid)
    except OSError as e:
        logger.warning("Failed to kill process %s: %s", process.pid, e)
    return False
