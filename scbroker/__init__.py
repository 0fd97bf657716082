# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""
SCBroker: identifier allocation and sandboxed interpreter execution for a
SuperCollider-style audio engine.
"""

from __future__ import annotations

__version__ = "0.1.0"
