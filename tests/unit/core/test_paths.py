"""Unit tests for scbroker/paths.py — executable and data-dir resolution."""
# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from scbroker import paths


class TestExecutables:
    def test_sclang_env_override(self, monkeypatch):
        monkeypatch.setenv("SCLANG_PATH", "/Applications/SC/sclang")
        assert paths.get_sclang_path() == "/Applications/SC/sclang"

    def test_sclang_platform_default(self, monkeypatch):
        monkeypatch.delenv("SCLANG_PATH", raising=False)
        with patch.object(paths, "_is_windows", return_value=False):
            assert paths.get_sclang_path() == "sclang"
        with patch.object(paths, "_is_windows", return_value=True):
            assert paths.get_sclang_path() == "sclang.exe"

    def test_scsynth_unset_is_none(self, monkeypatch):
        monkeypatch.delenv("SCSYNTH_PATH", raising=False)
        assert paths.get_scsynth_path() is None
        monkeypatch.setenv("SCSYNTH_PATH", "/usr/bin/scsynth")
        assert paths.get_scsynth_path() == "/usr/bin/scsynth"

    def test_scide_env_override(self, monkeypatch):
        monkeypatch.setenv("SCIDE_PATH", "/opt/scide")
        assert paths.get_scide_path() == "/opt/scide"


class TestDataDir:
    def test_env_override(self, data_dir):
        assert paths.get_data_dir() == data_dir.resolve()
        assert paths.get_log_dir() == data_dir.resolve() / "logs"
        assert paths.get_config_path() == data_dir.resolve() / "config.json"

    def test_default(self, monkeypatch):
        monkeypatch.delenv("SCBROKER_DATA_DIR", raising=False)
        assert paths.get_data_dir() == Path.home() / ".scbroker"
