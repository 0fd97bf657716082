# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""CLI command for executing an interpreter source file."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from scbroker.cli.commands._host import run_command
from scbroker.runtime import BrokerRuntime


def cmd_run(args: argparse.Namespace) -> None:
    """Execute a source file in a fresh worker and print its stdout."""
    path = Path(args.file)
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        sys.exit(1)

    async def _body(runtime: BrokerRuntime) -> str:
        return await runtime.executor.execute(source, timeout=args.timeout)

    output = run_command(args, _body)
    sys.stdout.write(output)
