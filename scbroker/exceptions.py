# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of SCBroker, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Unified exception hierarchy for SCBroker.

All domain-specific exceptions derive from :class:`SCBrokerError`,
enabling callers to catch the entire family with a single clause::

    try:
        ...
    except SCBrokerError as e:
        logger.error("Broker error: %s", e)

Every error carries a machine-readable ``code`` string so that the
dispatch layer can report failures without inspecting class names.

Identifier exhaustion has no exception class: allocators return ``None``.
"""

from __future__ import annotations


class SCBrokerError(Exception):
    """Base exception for all SCBroker errors."""

    code: str = "SC_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


# ── Interpreter ──────────────────────────────────────────────


class InterpreterError(SCBrokerError):
    """Failure while running interpreter source in a worker process."""

    code = "SC_EXECUTION_FAILED"


class InterpreterNotFoundError(InterpreterError):
    """The interpreter executable could not be located."""

    code = "SCLANG_NOT_FOUND"

    def __init__(self, path: str) -> None:
        super().__init__(
            f"sclang interpreter not found at '{path}'. "
            "Please ensure SuperCollider is installed and in PATH, "
            "or set SCLANG_PATH environment variable to the sclang executable path."
        )
        self.path = path


class InterpreterSpawnError(InterpreterError):
    """The worker process could not be created at all."""

    code = "SC_SPAWN_FAILED"


class InterpreterTimeoutError(InterpreterError):
    """The worker exceeded its wall-clock budget and was terminated."""

    code = "SCLANG_TIMEOUT"

    def __init__(self, timeout: float) -> None:
        super().__init__(f"sclang execution timed out after {timeout:g}s")
        self.timeout = timeout


class InterpreterExitError(InterpreterError):
    """The worker exited with a nonzero status.

    Carries the exit code and whatever the worker wrote to stderr, for
    diagnosis only.
    """

    def __init__(self, exit_code: int, *, stderr: str = "") -> None:
        super().__init__(f"sclang exited with code {exit_code}")
        self.exit_code = exit_code
        self.stderr = stderr


# ── Compilation ──────────────────────────────────────────────


class CompilationError(SCBrokerError):
    """SynthDef compilation or introspection errors."""

    code = "SC_COMPILATION_FAILED"


class SynthDefCompileError(CompilationError):
    """The interpreter did not produce a compiled definition."""


class SynthDefNotFoundError(CompilationError):
    """Referenced SynthDef is not known to the interpreter."""


# ── Quarks ───────────────────────────────────────────────────


class QuarkError(SCBrokerError):
    """Quark (package) install, remove or list failure."""

    code = "SC_QUARK_ERROR"


# ── Configuration ────────────────────────────────────────────


class ConfigError(SCBrokerError):
    """Configuration errors."""

    code = "SC_CONFIG_ERROR"


class ConfigValidationError(ConfigError):
    """Configuration validation failure."""
