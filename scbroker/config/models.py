# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of SCBroker, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Central configuration module for SCBroker.

Defines Pydantic models for config.json and provides load / save helpers
with a module-level singleton cache.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, model_validator

from scbroker.exceptions import ConfigValidationError

logger = logging.getLogger("scbroker.config")

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class SystemConfig(BaseModel):
    log_level: str = "INFO"
    json_log_file: bool = True


class InterpreterConfig(BaseModel):
    """How interpreter workers are launched and bounded."""

    sclang_path: str | None = None  # None = resolve from SCLANG_PATH / platform default
    args: list[str] = ["-D"]  # -D skips loading the default startup definitions
    default_timeout: float = 30.0  # seconds
    batch_timeout: float = 60.0  # seconds, used for batch compilation
    kill_grace_period: float = 1.0  # seconds to wait for a killed worker to exit
    scratch_dir: str | None = None  # None = tempfile.gettempdir()
    scratch_prefix: str = "sclang-"
    scratch_suffix: str = ".scd"

    @model_validator(mode="after")
    def _validate_durations(self) -> InterpreterConfig:
        for field in ("default_timeout", "batch_timeout", "kill_grace_period"):
            if getattr(self, field) <= 0:
                raise ValueError(f"{field} must be positive")
        if self.batch_timeout < self.default_timeout:
            raise ValueError(
                f"batch_timeout ({self.batch_timeout}) must not be "
                f"less than default_timeout ({self.default_timeout})"
            )
        return self

    def resolve_sclang_path(self) -> str:
        if self.sclang_path:
            return self.sclang_path
        from scbroker.paths import get_sclang_path

        return get_sclang_path()


class AllocatorConfig(BaseModel):
    """Identifier ranges mirroring the engine's reserved blocks."""

    node_id_offset: int = 1000  # engine-owned nodes (root group etc.) live below this
    max_nodes: int = 1024
    max_buffers: int = 1024
    num_output_bus_channels: int = 8  # hardware outputs occupy the lowest audio buses
    num_audio_bus_channels: int = 128
    num_control_bus_channels: int = 16384

    @model_validator(mode="after")
    def _validate_ranges(self) -> AllocatorConfig:
        if self.node_id_offset < 0 or self.num_output_bus_channels < 0:
            raise ValueError("range offsets must not be negative")
        for field in (
            "max_nodes",
            "max_buffers",
            "num_audio_bus_channels",
            "num_control_bus_channels",
        ):
            if getattr(self, field) <= 0:
                raise ValueError(f"{field} must be positive")
        return self


class BrokerConfig(BaseModel):
    version: int = 1
    system: SystemConfig = SystemConfig()
    interpreter: InterpreterConfig = InterpreterConfig()
    allocators: AllocatorConfig = AllocatorConfig()


# ---------------------------------------------------------------------------
# Singleton cache
# ---------------------------------------------------------------------------

_config: BrokerConfig | None = None
_config_path: Path | None = None
_config_mtime: float = 0.0


def invalidate_cache() -> None:
    """Reset the module-level singleton cache."""
    global _config, _config_path, _config_mtime
    _config = None
    _config_path = None
    _config_mtime = 0.0


def get_config_path() -> Path:
    """Return the default config.json location (imported lazily from paths)."""
    from scbroker.paths import get_config_path as _paths_config_path

    return _paths_config_path()


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> BrokerConfig:
    """Load configuration from disk, returning cached instance when possible.

    When the file does not exist the default configuration is returned.
    The cache is invalidated when the file's mtime changes.

    Raises:
        json.JSONDecodeError: config.json is not valid JSON.
        ConfigValidationError: config.json does not match the schema.
    """
    global _config, _config_path, _config_mtime

    if path is None:
        path = get_config_path()

    if _config is not None and _config_path == path:
        try:
            disk_mtime = path.stat().st_mtime
        except OSError:
            disk_mtime = 0.0
        if disk_mtime == _config_mtime:
            return _config
        logger.debug("Config file changed on disk (mtime %.3f → %.3f); reloading", _config_mtime, disk_mtime)

    if path.is_file():
        logger.debug("Loading config from %s", path)
        try:
            data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
            config = BrokerConfig.model_validate(data)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse %s: %s", path, exc)
            raise
        except ValidationError as exc:
            logger.error("Invalid config in %s: %s", path, exc)
            raise ConfigValidationError(f"Invalid config in {path}: {exc}") from exc
    else:
        logger.info("Config file not found at %s; using defaults", path)
        config = BrokerConfig()

    _config = config
    _config_path = path
    try:
        _config_mtime = path.stat().st_mtime
    except OSError:
        _config_mtime = 0.0
    return config


def save_config(config: BrokerConfig, path: Path | None = None) -> None:
    """Persist *config* to disk as pretty-printed JSON."""
    global _config, _config_path, _config_mtime

    if path is None:
        path = get_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)

    payload = config.model_dump(mode="json")
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    path.write_text(text, encoding="utf-8")

    logger.debug("Config saved to %s", path)

    _config = config
    _config_path = path
    try:
        _config_mtime = path.stat().st_mtime
    except OSError:
        _config_mtime = 0.0
