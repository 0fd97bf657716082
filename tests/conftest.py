# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""Global test fixtures for SCBroker.

Provides filesystem isolation, config cache management, and an
interpreter configuration that runs workers with the current Python
executable instead of a real sclang.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from scbroker.config import InterpreterConfig, invalidate_cache
from scbroker.interpreter import (
    InterpreterExecutor,
    ProcessGroupController,
    ProcessRegistry,
    TerminationSignals,
)


# ── Fakes ─────────────────────────────────────────────────


class FakeProcessGroup(ProcessGroupController):
    """Records kill attempts instead of signalling anything."""

    def __init__(
        self,
        *,
        group_error: OSError | None = None,
        direct_error: OSError | None = None,
    ) -> None:
        self.group_error = group_error
        self.direct_error = direct_error
        self.group_kills: list[int] = []
        self.direct_kills: list[int] = []

    def start_group(self) -> dict:
        return {}

    def kill_group(self, process) -> None:
        self.group_kills.append(process.pid)
        if self.group_error is not None:
            raise self.group_error

    def kill_direct(self, process) -> None:
        self.direct_kills.append(process.pid)
        if self.direct_error is not None:
            raise self.direct_error


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_config_cache():
    invalidate_cache()
    yield
    invalidate_cache()


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect ``SCBROKER_DATA_DIR`` to an empty temp directory."""
    d = tmp_path / "data"
    d.mkdir()
    monkeypatch.setenv("SCBROKER_DATA_DIR", str(d))
    return d


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    d = tmp_path / "scratch"
    d.mkdir()
    return d


@pytest.fixture
def interpreter_config(scratch_dir: Path) -> InterpreterConfig:
    """Run worker scripts with ``sys.executable``; scratch files land in *scratch_dir*."""
    return InterpreterConfig(
        sclang_path=sys.executable,
        args=[],
        default_timeout=10.0,
        batch_timeout=10.0,
        kill_grace_period=2.0,
        scratch_dir=str(scratch_dir),
    )


@pytest.fixture
def registry() -> ProcessRegistry:
    return ProcessRegistry(grace_period=2.0)


@pytest.fixture
def executor(
    registry: ProcessRegistry,
    interpreter_config: InterpreterConfig,
) -> InterpreterExecutor:
    return InterpreterExecutor(
        registry,
        config=interpreter_config,
        signals=TerminationSignals(),
    )


@pytest.fixture
def fake_group_factory():
    return FakeProcessGroup
