# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""Shared host lifecycle for CLI commands.

Every command loads config, configures logging, builds one
:class:`BrokerRuntime`, runs its coroutine and always shuts the runtime
down so that no interpreter worker outlives the CLI process.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

from scbroker.config.models import BrokerConfig, load_config
from scbroker.exceptions import SCBrokerError
from scbroker.logging_config import setup_logging
from scbroker.paths import get_log_dir
from scbroker.runtime import BrokerRuntime

logger = logging.getLogger("scbroker")

T = TypeVar("T")


def load_cli_config(args: argparse.Namespace) -> BrokerConfig:
    path = Path(args.config) if getattr(args, "config", None) else None
    return load_config(path)


def run_command(
    args: argparse.Namespace,
    body: Callable[[BrokerRuntime], Awaitable[T]],
) -> T:
    """Run *body* against a fresh runtime; exit 1 on broker errors."""
    try:
        config = load_cli_config(args)
    except (SCBrokerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    level = (
        getattr(args, "log_level", None)
        or os.environ.get("SCBROKER_LOG_LEVEL")
        or config.system.log_level
    )
    setup_logging(level=level, log_dir=get_log_dir(), json_file=config.system.json_log_file)

    async def _main() -> T:
        async with BrokerRuntime(config) as runtime:
            return await body(runtime)

    try:
        return asyncio.run(_main())
    except SCBrokerError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error [{e.code}]: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
