# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
Broker runtime: the explicitly owned set of shared services.

One :class:`BrokerRuntime` is built at host start.  It owns the resource
allocators, the process registry, the termination-signal hub and the
interpreter executor, and tears them down together in :meth:`shutdown`.
"""

from __future__ import annotations

import logging

from scbroker.allocators import ResourceAllocators
from scbroker.config.models import BrokerConfig
from scbroker.interpreter.executor import InterpreterExecutor
from scbroker.interpreter.process_group import ProcessGroupController
from scbroker.interpreter.registry import ProcessRegistry
from scbroker.interpreter.signals import TerminationSignals

logger = logging.getLogger(__name__)


class BrokerRuntime:
    """Shared broker services with a defined start and shutdown."""

    def __init__(
        self,
        config: BrokerConfig | None = None,
        *,
        process_group: ProcessGroupController | None = None,
    ) -> None:
        self.config = config if config is not None else BrokerConfig()
        self.allocators = ResourceAllocators.from_config(self.config.allocators)
        self.registry = ProcessRegistry(
            process_group=process_group,
            grace_period=self.config.interpreter.kill_grace_period,
        )
        self.signals = TerminationSignals()
        self.executor = InterpreterExecutor(
            self.registry,
            config=self.config.interpreter,
            signals=self.signals,
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def shutdown(self) -> None:
        """Kill every in-flight worker and forget issued ids.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        logger.info("Shutting down broker runtime")
        await self.registry.kill_all()
        self.allocators.reset_all()

    async def __aenter__(self) -> BrokerRuntime:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()
