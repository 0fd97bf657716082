# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""Quark (interpreter package) management through interpreter workers."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from scbroker.exceptions import QuarkError, SCBrokerError
from scbroker.interpreter.executor import InterpreterExecutor
from scbroker.sclang_code import strip_echo_prefix, validate_name

logger = logging.getLogger(__name__)

_LIST_INSTALLED_CODE = """
    Quarks.installed.do({ |q|
      q.name.postln;
      q.version.asString.postln;
      (q.summary ? "No description").postln;
      true.postln;
    });
    0.exit;
"""


@dataclass(frozen=True)
class QuarkInfo:
    name: str
    version: str
    description: str
    installed: bool


def parse_quark_list(output: str) -> list[QuarkInfo]:
    """Parse interpreter output into quark records.

    The listing prints four lines per quark: name, version, description
    and an installed flag.  A trailing incomplete group is ignored.
    """
    lines = [strip_echo_prefix(line) for line in output.splitlines() if line.strip()]
    quarks: list[QuarkInfo] = []
    for i in range(0, len(lines) - 3, 4):
        name, version, description, installed = lines[i:i + 4]
        quarks.append(
            QuarkInfo(
                name=name,
                version=version,
                description=description,
                installed=installed.lower() == "true",
            )
        )
    return quarks


async def list_installed_quarks(executor: InterpreterExecutor) -> list[QuarkInfo]:
    try:
        output = await executor.execute(_LIST_INSTALLED_CODE)
    except SCBrokerError as e:
        raise QuarkError(f"Failed to list installed quarks: {e}") from e
    return parse_quark_list(output)


async def _run_quark_action(
    executor: InterpreterExecutor,
    quark_name: str,
    method: str,
    verb: str,
) -> str:
    validate_name(quark_name, "quark name")
    message = f"Quark '{quark_name}' {verb} successfully"
    code = f"""
    Quarks.{method}("{quark_name}");
    "{message}".postln;
    0.exit;
    """

    try:
        output = await executor.execute(code)
    except SCBrokerError as e:
        raise QuarkError(f"Failed to {method} quark '{quark_name}': {e}") from e

    if "ERROR" in output or "failed" in output:
        raise QuarkError(f"Failed to {method} quark '{quark_name}': {output}")

    logger.info(message)
    return message


async def install_quark(executor: InterpreterExecutor, quark_name: str) -> str:
    """Install *quark_name*; returns a confirmation message."""
    return await _run_quark_action(executor, quark_name, "install", "installed")


async def remove_quark(executor: InterpreterExecutor, quark_name: str) -> str:
    """Uninstall *quark_name*; returns a confirmation message."""
    return await _run_quark_action(executor, quark_name, "uninstall", "removed")
