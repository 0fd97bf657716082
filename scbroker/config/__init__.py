# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from scbroker.config.models import (
    AllocatorConfig,
    BrokerConfig,
    InterpreterConfig,
    SystemConfig,
    get_config_path,
    invalidate_cache,
    load_config,
    save_config,
)

__all__ = [
    "AllocatorConfig",
    "BrokerConfig",
    "InterpreterConfig",
    "SystemConfig",
    "get_config_path",
    "invalidate_cache",
    "load_config",
    "save_config",
]
