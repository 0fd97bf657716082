# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scbroker",
        description="SCBroker - SuperCollider command broker",
    )
    parser.add_argument(
        "--config", default=None, metavar="PATH",
        help="Config file (default: <data-dir>/config.json)",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Override runtime data directory (default: ~/.scbroker or SCBROKER_DATA_DIR)",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Log level (default: config system.log_level or SCBROKER_LOG_LEVEL)",
    )
    sub = parser.add_subparsers(dest="command")

    # ── Run ───────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Execute an interpreter source file")
    p_run.add_argument("file", help="Source file to execute")
    p_run.add_argument(
        "--timeout", type=float, default=None,
        help="Timeout in seconds (default: interpreter.default_timeout)",
    )
    p_run.set_defaults(func=_lazy_run)

    # ── Quarks ────────────────────────────────────────────
    p_quarks = sub.add_parser("quarks", help="Manage interpreter quarks")
    quark_sub = p_quarks.add_subparsers(dest="quark_command")

    p_quark_list = quark_sub.add_parser("list", help="List installed quarks")
    p_quark_list.set_defaults(func=_lazy_quark_list)

    p_quark_install = quark_sub.add_parser("install", help="Install a quark")
    p_quark_install.add_argument("name", help="Quark name")
    p_quark_install.set_defaults(func=_lazy_quark_install)

    p_quark_remove = quark_sub.add_parser("remove", help="Remove a quark")
    p_quark_remove.add_argument("name", help="Quark name")
    p_quark_remove.set_defaults(func=_lazy_quark_remove)

    # ── SynthDefs ─────────────────────────────────────────
    p_synthdef = sub.add_parser("synthdef", help="Compile and inspect SynthDefs")
    synthdef_sub = p_synthdef.add_subparsers(dest="synthdef_command")

    p_compile = synthdef_sub.add_parser(
        "compile", help="Compile SynthDef source files (batch when several)",
    )
    p_compile.add_argument(
        "files", nargs="+",
        help="Source files; the SynthDef name defaults to the file stem",
    )
    p_compile.add_argument(
        "--name", default=None,
        help="SynthDef name (single file only)",
    )
    p_compile.add_argument(
        "--out", default=".", metavar="DIR",
        help="Directory for compiled .scsyndef files (default: current)",
    )
    p_compile.set_defaults(func=_lazy_synthdef_compile)

    p_params = synthdef_sub.add_parser("params", help="Show a SynthDef's controls")
    p_params.add_argument("name", help="SynthDef name")
    p_params.set_defaults(func=_lazy_synthdef_params)

    # ── Config ────────────────────────────────────────────
    p_config = sub.add_parser("config", help="Manage configuration")
    p_config.set_defaults(func=_lazy_config_dispatch, config_parser=p_config)
    config_sub = p_config.add_subparsers(dest="config_command")

    p_cfg_init = config_sub.add_parser("init", help="Write the default config file")
    p_cfg_init.add_argument(
        "--force", action="store_true", help="Overwrite an existing config file",
    )
    p_cfg_init.set_defaults(func=_lazy_config_init)

    p_cfg_get = config_sub.add_parser("get", help="Get a config value")
    p_cfg_get.add_argument("key", help="Dot-notation key (e.g. interpreter.default_timeout)")
    p_cfg_get.set_defaults(func=_lazy_config_get)

    p_cfg_set = config_sub.add_parser("set", help="Set a config value")
    p_cfg_set.add_argument("key", help="Dot-notation key")
    p_cfg_set.add_argument("value", help="Value to set (parsed as JSON when possible)")
    p_cfg_set.set_defaults(func=_lazy_config_set)

    p_cfg_list = config_sub.add_parser("list", help="List all config values")
    p_cfg_list.add_argument("--section", default=None, help="Filter by section")
    p_cfg_list.set_defaults(func=_lazy_config_list)

    return parser


def cli_main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    # Apply --data-dir override before any command
    if args.data_dir:
        os.environ["SCBROKER_DATA_DIR"] = args.data_dir

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


# ── Lazy import wrappers ──────────────────────────────────


def _lazy_run(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.run_cmd import cmd_run

    cmd_run(args)


def _lazy_quark_list(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.quark_cmd import cmd_quark_list

    cmd_quark_list(args)


def _lazy_quark_install(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.quark_cmd import cmd_quark_install

    cmd_quark_install(args)


def _lazy_quark_remove(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.quark_cmd import cmd_quark_remove

    cmd_quark_remove(args)


def _lazy_synthdef_compile(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.synthdef_cmd import cmd_synthdef_compile

    cmd_synthdef_compile(args)


def _lazy_synthdef_params(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.synthdef_cmd import cmd_synthdef_params

    cmd_synthdef_params(args)


def _lazy_config_dispatch(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.config_cmd import cmd_config_dispatch

    cmd_config_dispatch(args)


def _lazy_config_init(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.config_cmd import cmd_config_init

    cmd_config_init(args)


def _lazy_config_get(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.config_cmd import cmd_config_get

    cmd_config_get(args)


def _lazy_config_set(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.config_cmd import cmd_config_set

    cmd_config_set(args)


def _lazy_config_list(args: argparse.Namespace) -> None:
    from scbroker.cli.commands.config_cmd import cmd_config_list

    cmd_config_list(args)
