# SCBroker - SuperCollider command broker
# Copyright (C) 2026 SCBroker Authors
# SPDX-License-Identifier: Apache-2.0
"""CLI commands for quark management."""

from __future__ import annotations

import argparse

from scbroker.cli.commands._host import run_command
from scbroker.quarks import (
    QuarkInfo,
    install_quark,
    list_installed_quarks,
    remove_quark,
)
from scbroker.runtime import BrokerRuntime


def cmd_quark_list(args: argparse.Namespace) -> None:
    async def _body(runtime: BrokerRuntime) -> list[QuarkInfo]:
        return await list_installed_quarks(runtime.executor)

    quarks = run_command(args, _body)
    if not quarks:
        print("No quarks installed.")
        return
    for q in quarks:
        print(f"{q.name:<24} {q.version:<10} {q.description}")


def cmd_quark_install(args: argparse.Namespace) -> None:
    async def _body(runtime: BrokerRuntime) -> str:
        return await install_quark(runtime.executor, args.name)

    print(run_command(args, _body))


def cmd_quark_remove(args: argparse.Namespace) -> None:
    async def _body(runtime: BrokerRuntime) -> str:
        return await remove_quark(runtime.executor, args.name)

    print(run_command(args, _body))
