# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from scbroker.cli.parser import cli_main

__all__ = ["cli_main"]
