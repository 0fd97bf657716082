# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""CLI handlers for the ``scbroker config`` subcommand."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from scbroker.config.models import (
    BrokerConfig,
    get_config_path,
    invalidate_cache,
    load_config,
    save_config,
)
from scbroker.exceptions import SCBrokerError


# ── Helpers ───────────────────────────────────────────────


def _config_path(args: argparse.Namespace) -> Path:
    return Path(args.config) if getattr(args, "config", None) else get_config_path()


def _load_or_exit(path: Path) -> BrokerConfig:
    try:
        return load_config(path)
    except (SCBrokerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _flatten_dict(d: dict, prefix: str = "") -> list[tuple[str, Any]]:
    """Recursively flatten a nested dict to dot-notation key-value pairs."""
    items: list[tuple[str, Any]] = []
    for k, v in d.items():
        full_key = f"{prefix}.{k}" if prefix else k
        if isinstance(v, dict):
            items.extend(_flatten_dict(v, full_key))
        else:
            items.append((full_key, v))
    return items


def _coerce_value(value: str) -> Any:
    """Parse a CLI value as JSON (numbers, booleans, null, lists), else keep the string."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


# ── Command handlers ──────────────────────────────────────


def cmd_config_dispatch(args: argparse.Namespace) -> None:
    if not getattr(args, "config_command", None):
        args.config_parser.print_help()


def cmd_config_init(args: argparse.Namespace) -> None:
    """Write the default configuration, refusing to overwrite without --force."""
    path = _config_path(args)
    if path.exists() and not args.force:
        print(f"Error: {path} already exists (use --force to overwrite)", file=sys.stderr)
        sys.exit(1)

    invalidate_cache()
    save_config(BrokerConfig(), path)
    print(f"Wrote default config to {path}")


def cmd_config_get(args: argparse.Namespace) -> None:
    current: Any = _load_or_exit(_config_path(args)).model_dump(mode="json")
    for part in args.key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            print(f"Error: key '{args.key}' not found in configuration", file=sys.stderr)
            sys.exit(1)
    print(json.dumps(current) if isinstance(current, (dict, list)) else current)


def cmd_config_set(args: argparse.Namespace) -> None:
    path = _config_path(args)
    data = _load_or_exit(path).model_dump(mode="json")

    parts = args.key.split(".")
    target = data
    for part in parts[:-1]:
        target = target.get(part) if isinstance(target, dict) else None
    if not isinstance(target, dict) or parts[-1] not in target:
        print(f"Error: key '{args.key}' not found in configuration", file=sys.stderr)
        sys.exit(1)
    target[parts[-1]] = _coerce_value(args.value)

    try:
        new_config = BrokerConfig.model_validate(data)
    except ValidationError as e:
        print(f"Error: invalid value for {args.key}: {e}", file=sys.stderr)
        sys.exit(1)

    invalidate_cache()
    save_config(new_config, path)
    print(f"Set {args.key} = {args.value}")


def cmd_config_list(args: argparse.Namespace) -> None:
    data = _load_or_exit(_config_path(args)).model_dump(mode="json")
    flat = _flatten_dict(data)
    if args.section:
        flat = [(k, v) for k, v in flat if k.startswith(args.section)]
    for k, v in flat:
        print(f"{k} = {json.dumps(v) if isinstance(v, list) else v}")
