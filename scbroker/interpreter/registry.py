# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
Registry of every interpreter worker currently in flight.

A record is tracked from successful spawn until its cleanup completes.
At host shutdown :meth:`ProcessRegistry.kill_all` terminates whatever is
left so that no worker outlives the broker.
"""

from __future__ import annotations

import asyncio
import logging

from scbroker.interpreter.process_group import (
    ProcessGroupController,
    default_process_group,
    force_kill,
)
from scbroker.interpreter.worker import WorkerRecord

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 1.0  # seconds


class ProcessRegistry:
    """Process-wide set of live worker records.

    Constructed once by the host and shared by reference with every
    executor.  Membership changes happen on the event loop thread, so
    concurrent executions can track and untrack without extra locking.
    """

    def __init__(
        self,
        process_group: ProcessGroupController | None = None,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ) -> None:
        self.process_group = (
            process_group if process_group is not None else default_process_group()
        )
        self.grace_period = grace_period
        self._records: dict[int, WorkerRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record: object) -> bool:
        return self._records.get(id(record)) is record

    def records(self) -> list[WorkerRecord]:
        """Snapshot of tracked records."""
        return list(self._records.values())

    def track(self, record: WorkerRecord) -> None:
        self._records[id(record)] = record
        logger.debug("Tracking worker %s (%d in flight)", record.pid, len(self._records))

    def untrack(self, record: WorkerRecord) -> None:
        if self._records.pop(id(record), None) is not None:
            logger.debug("Untracked worker %s (%d in flight)", record.pid, len(self._records))

    async def kill_all(self) -> None:
        """Force-terminate every tracked worker until none remain.

        Each worker gets at most ``grace_period`` seconds to exit after the
        kill; waits within one sweep overlap. Workers tracked while a sweep
        is waiting are killed by the next sweep. Workers that refuse to die
        are dropped anyway.
        """
        records = self.records()
        if not records:
            logger.debug("No active sclang processes to kill")
            return

        while records:
            logger.info("Killing %d active sclang processes", len(records))
            await asyncio.gather(*(self._kill_one(r) for r in records))
            for record in records:
                self._records.pop(id(record), None)
            records = self.records()
        logger.info("All sclang processes terminated")

    async def _kill_one(self, record: WorkerRecord) -> None:
        process = record.process
        if process.returncode is not None:
            return

        force_kill(self.process_group, process)
        try:
            async with asyncio.timeout(self.grace_period):
                await process.wait()
        except TimeoutError:
            logger.warning(
                "Process %s did not exit within %.1fs", record.pid, self.grace_period,
            )
