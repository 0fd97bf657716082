# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""CLI commands for SynthDef compilation and inspection."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from scbroker.cli.commands._host import run_command
from scbroker.runtime import BrokerRuntime
from scbroker.synthdefs import (
    SynthDefCompileResult,
    SynthDefParameter,
    SynthDefSource,
    compile_synthdef,
    compile_synthdefs_batch,
    get_synthdef_parameters,
)


def _read_sources(args: argparse.Namespace) -> list[SynthDefSource]:
    if args.name and len(args.files) > 1:
        print("Error: --name can only be used with a single file", file=sys.stderr)
        sys.exit(1)

    sources: list[SynthDefSource] = []
    for file in args.files:
        path = Path(file)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot read {path}: {e}", file=sys.stderr)
            sys.exit(1)
        sources.append(SynthDefSource(name=args.name or path.stem, source=text))
    return sources


def cmd_synthdef_compile(args: argparse.Namespace) -> None:
    """Compile one or more SynthDef files into ``--out``."""
    sources = _read_sources(args)
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    if len(sources) == 1:
        item = sources[0]

        async def _single(runtime: BrokerRuntime) -> bytes:
            return await compile_synthdef(runtime.executor, item.source, item.name)

        data = run_command(args, _single)
        target = out_dir / f"{item.name}.scsyndef"
        target.write_bytes(data)
        print(f"{item.name}: {len(data)} bytes -> {target}")
        return

    async def _batch(runtime: BrokerRuntime) -> list[SynthDefCompileResult]:
        return await compile_synthdefs_batch(runtime.executor, sources)

    failed = 0
    for result in run_command(args, _batch):
        if result.success and result.data is not None:
            target = out_dir / f"{result.name}.scsyndef"
            target.write_bytes(result.data)
            print(f"{result.name}: {len(result.data)} bytes -> {target}")
        else:
            failed += 1
            print(f"{result.name}: FAILED ({result.error})", file=sys.stderr)
    if failed:
        sys.exit(1)


def cmd_synthdef_params(args: argparse.Namespace) -> None:
    async def _body(runtime: BrokerRuntime) -> list[SynthDefParameter]:
        return await get_synthdef_parameters(runtime.executor, args.name)

    for param in run_command(args, _body):
        print(f"{param.index:>3}  {param.name:<20} {param.default_value:g}")
