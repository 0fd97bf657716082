# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of SCBroker, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Centralized path resolution for SCBroker.

All modules import executable and directory paths from here instead of
computing them ad-hoc.  Every location can be overridden via environment
variables (``SCLANG_PATH``, ``SCSYNTH_PATH``, ``SCIDE_PATH``,
``SCBROKER_DATA_DIR``).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Default runtime data directory
_DEFAULT_DATA_DIR = Path.home() / ".scbroker"


def _is_windows() -> bool:
    return sys.platform == "win32"


def get_sclang_path() -> str:
    """Return the sclang interpreter path, respecting SCLANG_PATH env var."""
    custom = os.environ.get("SCLANG_PATH")
    if custom:
        return custom
    return "sclang.exe" if _is_windows() else "sclang"


def get_scsynth_path() -> str | None:
    """Return the scsynth server path, or None to let the engine auto-detect."""
    return os.environ.get("SCSYNTH_PATH") or None


def get_scide_path() -> str:
    custom = os.environ.get("SCIDE_PATH")
    if custom:
        return custom
    return "scide.exe" if _is_windows() else "scide"


def get_data_dir() -> Path:
    """Return the runtime data directory, respecting SCBROKER_DATA_DIR env var."""
    env_val = os.environ.get("SCBROKER_DATA_DIR")
    if env_val:
        return Path(env_val).expanduser().resolve()
    return _DEFAULT_DATA_DIR


def get_log_dir() -> Path:
    return get_data_dir() / "logs"


def get_config_path() -> Path:
    return get_data_dir() / "config.json"
