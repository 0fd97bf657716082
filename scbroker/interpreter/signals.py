# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
One-shot termination-signal subscriptions for in-flight workers.

An asyncio loop holds a single handler per signal, but every executor
invocation wants its own one-shot SIGTERM/SIGINT hook.  The hub installs
the loop handlers while at least one subscriber exists and fans each
delivered signal out to every subscriber exactly once.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import count

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGTERM, signal.SIGINT)

_subscription_ids = count(1)


@dataclass(eq=False)
class Subscription:
    """Handle returned by :meth:`TerminationSignals.subscribe`."""

    callback: Callable[[int], None]
    id: int = field(default_factory=lambda: next(_subscription_ids))
    fired: bool = False


class TerminationSignals:
    """Fan SIGTERM/SIGINT out to one-shot subscribers."""

    def __init__(
        self,
        signals: tuple[signal.Signals, ...] = TERMINATION_SIGNALS,
    ) -> None:
        self._signals = signals
        self._subscribers: dict[int, Subscription] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    def __len__(self) -> int:
        return len(self._subscribers)

    @property
    def installed(self) -> bool:
        return self._loop is not None

    def subscribe(self, callback: Callable[[int], None]) -> Subscription:
        """Register *callback* to run once on the next termination signal."""
        sub = Subscription(callback=callback)
        self._subscribers[sub.id] = sub
        if len(self._subscribers) == 1:
            self._install()
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """Remove *sub*; safe to call repeatedly."""
        if self._subscribers.pop(sub.id, None) is not None and not self._subscribers:
            self._uninstall()

    def deliver(self, signum: int) -> None:
        """Run every current subscriber once, then drop them all."""
        subscribers = list(self._subscribers.values())
        self._subscribers.clear()
        self._uninstall()

        if subscribers:
            logger.warning(
                "Received signal %s; terminating %d in-flight worker(s)",
                signal.Signals(signum).name, len(subscribers),
            )
        for sub in subscribers:
            if sub.fired:
                continue
            sub.fired = True
            try:
                sub.callback(signum)
            except Exception:
                logger.exception("Termination callback %d failed", sub.id)

    # ── Loop handler management ───────────────────────────────

    def _install(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; termination signals not hooked")
            return
        hooked: list[signal.Signals] = []
        try:
            for sig in self._signals:
                loop.add_signal_handler(sig, self.deliver, int(sig))
                hooked.append(sig)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            # Windows loops and non-main threads cannot own signal handlers
            logger.debug("Signal handlers unavailable: %s", e)
            for sig in hooked:
                loop.remove_signal_handler(sig)
            return
        self._loop = loop

    def _uninstall(self) -> None:
        if self._loop is None:
            return
        loop, self._loop = self._loop, None
        if loop.is_closed():
            return
        for sig in self._signals:
            loop.remove_signal_handler(sig)
