# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of SCBroker, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""SynthDef compilation and introspection through interpreter workers.

Compilation asks the interpreter to ``writeDefFile`` into a fresh temporary
directory and then reads the resulting ``<name>.scsyndef`` artifacts back.
The batch variant compiles many definitions in one worker run and reports
success or failure per definition.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from scbroker.exceptions import (
    CompilationError,
    SCBrokerError,
    SynthDefCompileError,
    SynthDefNotFoundError,
)
from scbroker.interpreter.executor import InterpreterExecutor
from scbroker.sclang_code import string_literal, validate_name

logger = logging.getLogger(__name__)

COMPILED_MARKER = "SYNTHDEF_COMPILED"
BATCH_COMPILED_MARKER = "ALL_SYNTHDEFS_COMPILED"
NOT_FOUND_MARKER = "ERROR: SynthDef"

_CONTROL_RE = re.compile(r"ControlName\((\w+),\s*(\d+),\s*([\d.eE+-]+)\)")


@dataclass(frozen=True)
class SynthDefSource:
    name: str
    source: str


@dataclass(frozen=True)
class SynthDefParameter:
    name: str
    index: int
    default_value: float


@dataclass
class SynthDefCompileResult:
    """Per-definition outcome of a batch compile."""

    name: str
    success: bool
    data: bytes | None = None
    error: str | None = None


# ── Parsing ──────────────────────────────────────────────────


def parse_synthdef_parameters(output: str) -> list[SynthDefParameter]:
    """Parse ``ControlName(name, index, default)`` lines from interpreter output."""
    params: list[SynthDefParameter] = []
    for line in output.splitlines():
        for match in _CONTROL_RE.finditer(line):
            params.append(
                SynthDefParameter(
                    name=match.group(1),
                    index=int(match.group(2)),
                    default_value=float(match.group(3)),
                )
            )
    return params


# ── Single definition ────────────────────────────────────────


async def compile_synthdef(
    executor: InterpreterExecutor,
    source: str,
    name: str,
) -> bytes:
    """Compile one SynthDef and return its binary ``.scsyndef`` contents.

    Raises:
        ValueError: *name* is not a plain identifier.
        SynthDefCompileError: The interpreter run failed or produced no file.
    """
    validate_name(name, "SynthDef name")
    out_dir = Path(tempfile.mkdtemp(prefix="sc-synthdef-"))
    synthdef_path = out_dir / f"{name}.scsyndef"
    code = f"""
    (
      {source}
    ).writeDefFile({string_literal(str(out_dir))});
    "{COMPILED_MARKER}".postln;
    0.exit;
    """

    try:
        logger.debug("Compiling SynthDef '%s' to: %s", name, synthdef_path)
        try:
            output = await executor.execute(code)
        except SCBrokerError as e:
            raise SynthDefCompileError(f"Failed to compile SynthDef '{name}': {e}") from e

        if COMPILED_MARKER not in output:
            raise SynthDefCompileError(f"SynthDef compilation failed: {output}")

        try:
            data = await asyncio.to_thread(synthdef_path.read_bytes)
        except OSError as e:
            raise SynthDefCompileError(
                f"Failed to read compiled SynthDef '{name}': {e}"
            ) from e

        logger.debug("Successfully compiled SynthDef '%s', size: %d bytes", name, len(data))
        return data
    finally:
        shutil.rmtree(out_dir, ignore_errors=True)


async def get_synthdef_parameters(
    executor: InterpreterExecutor,
    name: str,
) -> list[SynthDefParameter]:
    """Return the controls of a SynthDef known to the interpreter's global library."""
    validate_name(name, "SynthDef name")
    code = f"""
    var desc = SynthDescLib.global.at('{name}');
    if (desc.isNil) {{
      "{NOT_FOUND_MARKER} '{name}' not found".postln;
      0.exit;
    }} {{
      desc.controls.do({{ |c|
        ("ControlName(" ++ c.name ++ ", " ++ c.index ++ ", " ++ c.defaultValue ++ ")").postln;
      }});
      0.exit;
    }};
    """

    try:
        output = await executor.execute(code)
    except SCBrokerError as e:
        raise CompilationError(f"Failed to get SynthDef '{name}' parameters: {e}") from e

    if NOT_FOUND_MARKER in output:
        raise SynthDefNotFoundError(f"SynthDef '{name}' not found")
    return parse_synthdef_parameters(output)


# ── Batch ────────────────────────────────────────────────────


def _batch_code(synthdefs: list[SynthDefSource], out_dir: Path) -> str:
    target = string_literal(str(out_dir))
    parts = [
        f'("Compiling SynthDef {idx}").postln; ({item.source}).writeDefFile({target});'
        for idx, item in enumerate(synthdefs, start=1)
    ]
    body = "\n      ".join(parts)
    return f"""
    (
      {body}
      "{BATCH_COMPILED_MARKER}".postln;
      0.exit;
    )
    """


async def compile_synthdefs_batch(
    executor: InterpreterExecutor,
    synthdefs: list[SynthDefSource],
) -> list[SynthDefCompileResult]:
    """Compile several SynthDefs in a single worker run.

    Never raises for compilation problems: each definition gets its own
    :class:`SynthDefCompileResult`, and a failed run marks every item
    failed with the run's error message.  Results keep input order.
    """
    if not synthdefs:
        return []
    for item in synthdefs:
        validate_name(item.name, "SynthDef name")

    out_dir = Path(tempfile.mkdtemp(prefix="sc-synthdefs-"))
    try:
        logger.debug("Batch compiling %d SynthDefs to: %s", len(synthdefs), out_dir)
        try:
            output = await executor.execute(
                _batch_code(synthdefs, out_dir),
                timeout=executor.config.batch_timeout,
            )
            if BATCH_COMPILED_MARKER not in output:
                raise SynthDefCompileError(f"Batch SynthDef compilation failed: {output}")
        except SCBrokerError as e:
            logger.error("Batch SynthDef compilation failed: %s", e)
            return [
                SynthDefCompileResult(name=item.name, success=False, error=str(e))
                for item in synthdefs
            ]

        results: list[SynthDefCompileResult] = []
        for item in synthdefs:
            path = out_dir / f"{item.name}.scsyndef"
            try:
                data = await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                logger.error("Failed to read SynthDef '%s': %s", item.name, e)
                results.append(
                    SynthDefCompileResult(
                        name=item.name,
                        success=False,
                        error=f"Failed to read compiled SynthDef: {e}",
                    )
                )
                continue
            logger.debug(
                "Successfully compiled SynthDef '%s', size: %d bytes", item.name, len(data),
            )
            results.append(SynthDefCompileResult(name=item.name, success=True, data=data))
        return results
    finally:
        shutil.rmtree(out_dir, ignore_errors=True)
