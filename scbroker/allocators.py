# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of SCBroker, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Identifier allocators for engine-side resources.

The engine addresses nodes, buffers and buses by integer id.  Each resource
kind gets one :class:`IdAllocator` covering a bounded range; freed ids are
recycled before the watermark grows.

Allocators are not locked.  Callers issue one ``alloc``/``free`` at a time
per instance, which holds naturally on a single asyncio loop as long as no
``await`` sits between reading and using an id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scbroker.config.models import AllocatorConfig

logger = logging.getLogger(__name__)


class IdAllocator:
    """Issue unique ids from ``[range_start, range_start + range_size)``."""

    def __init__(self, range_start: int, range_size: int, name: str = "ids") -> None:
        if range_start < 0:
            raise ValueError("range_start must not be negative")
        if range_size <= 0:
            raise ValueError("range_size must be positive")
        self._range_start = range_start
        self._range_size = range_size
        self.name = name

        self._watermark = range_start
        self._allocated: set[int] = set()
        self._free: set[int] = set()

    def __repr__(self) -> str:
        return (
            f"IdAllocator(name={self.name!r}, range=[{self.range_start}, {self.range_end}), "
            f"allocated={len(self._allocated)})"
        )

    @property
    def range_start(self) -> int:
        return self._range_start

    @property
    def range_size(self) -> int:
        return self._range_size

    @property
    def range_end(self) -> int:
        """First id past the end of the range (exclusive bound)."""
        return self._range_start + self._range_size

    @property
    def watermark(self) -> int:
        """Next id that has never been issued."""
        return self._watermark

    def alloc(self) -> int | None:
        """Allocate an id, or return None when the range is exhausted.

        Recycled ids are handed out before the watermark advances.  Which
        recycled id comes back first is unspecified.
        """
        if self._free:
            resource_id = self._free.pop()
        elif self._watermark < self.range_end:
            resource_id = self._watermark
            self._watermark += 1
        else:
            logger.warning(
                "%s allocator exhausted (%d ids in use)",
                self.name, len(self._allocated),
            )
            return None

        self._allocated.add(resource_id)
        return resource_id

    def free(self, resource_id: int) -> None:
        """Release *resource_id* for reuse.

        Freeing an id that is not currently allocated is a silent no-op so
        that cleanup paths can call this regardless of prior state.
        """
        if resource_id in self._allocated:
            self._allocated.remove(resource_id)
            self._free.add(resource_id)

    def is_allocated(self, resource_id: int) -> bool:
        return resource_id in self._allocated

    def reset(self) -> None:
        """Forget every issued id (the engine was restarted)."""
        self._watermark = self._range_start
        self._allocated.clear()
        self._free.clear()

    def get_allocated_count(self) -> int:
        return len(self._allocated)

    def get_allocated_ids(self) -> list[int]:
        return sorted(self._allocated)


# ── Engine resource kinds ──────────────────────────────────────


@dataclass
class ResourceAllocators:
    """The four allocators a broker owns, one per engine resource kind."""

    nodes: IdAllocator
    buffers: IdAllocator
    audio_buses: IdAllocator
    control_buses: IdAllocator

    @classmethod
    def from_config(cls, cfg: AllocatorConfig) -> ResourceAllocators:
        return cls(
            nodes=IdAllocator(cfg.node_id_offset, cfg.max_nodes, name="node"),
            buffers=IdAllocator(0, cfg.max_buffers, name="buffer"),
            audio_buses=IdAllocator(
                cfg.num_output_bus_channels,
                cfg.num_audio_bus_channels,
                name="audio_bus",
            ),
            control_buses=IdAllocator(0, cfg.num_control_bus_channels, name="control_bus"),
        )

    def _all(self) -> tuple[IdAllocator, ...]:
        return (self.nodes, self.buffers, self.audio_buses, self.control_buses)

    def reset_all(self) -> None:
        """Reset every allocator; called when the engine process is torn down."""
        for allocator in self._all():
            allocator.reset()
        logger.info("Resource allocators reset")

    def summary(self) -> dict[str, int]:
        """Live id count per resource kind."""
        return {a.name: a.get_allocated_count() for a in self._all()}
