# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""Helpers for splicing values into generated interpreter source."""

from __future__ import annotations

import re

_NAME_RE = re.compile(r"[A-Za-z0-9_\-]+")

# Interpreter output lines are echoed with a "-> " prefix
_ECHO_PREFIX_RE = re.compile(r"^->\s*")


def validate_name(name: str, kind: str = "name") -> str:
    """Return *name* if it is safe to embed in a symbol or string literal."""
    if not name or not _NAME_RE.fullmatch(name):
        raise ValueError(f"Invalid {kind} {name!r}: use letters, digits, '_' or '-'")
    return name


def string_literal(value: str) -> str:
    """Quote *value* as an interpreter string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def strip_echo_prefix(line: str) -> str:
    return _ECHO_PREFIX_RE.sub("", line.strip())
