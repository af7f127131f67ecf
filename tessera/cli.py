#!/usr/bin/env python3
"""
TESSERA Command Line Interface

Drives a registry persisted as a JSON snapshot file. Each invocation loads the
snapshot, performs one operation and, if it succeeded, writes the new state.
A rejected operation leaves the file untouched.

Usage:
    tessera [--state FILE] [--as ACCOUNT] <command> [args]

Commands:
    init            Create an empty registry from configuration
    info            Collection identity, issued count, pause state
    mint            Mint an asset to an account (admin only)
    transfer        Move an asset between accounts
    burn            Destroy an asset
    approve         Set or clear the delegate of an asset
    set-operator    Grant or revoke an operator
    pause/unpause   Toggle the mint pause gate (admin only)
    owner-of        Current holder of an asset
    balance-of      Number of assets an account holds
    assets-of       Ids an account holds
    identifier      Identifier string of an asset
    state-root      Digest of the current state
    config          Show or validate configuration

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from tessera import __version__
from tessera.config import ConfigManager
from tessera.core import load_json, write_json
from tessera.events import Event
from tessera.hardening import RegistryError
from tessera.observability import RegistryComponent, configure_logging, get_logger
from tessera.registry import AssetRegistry

log = get_logger("cli", RegistryComponent.CLI)

DEFAULT_STATE_FILE = "tessera-state.json"

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_REJECTED = 2


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = EXIT_USAGE):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip()
    elif isinstance(data, dict):
        return "\n".join(f"{k}: {v}" for k, v in data.items())
    return str(data)


def _event_output(event: Optional[Event]) -> Dict[str, Any]:
    if event is None:
        return {"event": None}
    return {"event": event.event_type, "args": list(event.args)}


class TesseraCLI:
    """Main CLI application."""

    def __init__(self) -> None:
        self.parser = argparse.ArgumentParser(
            prog="tessera",
            description="TESSERA non-fungible asset registry",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument("--version", "-V", action="version", version=f"tessera {__version__}")
        self.parser.add_argument(
            "--state", "-s",
            default=DEFAULT_STATE_FILE,
            help=f"Registry snapshot file (default: {DEFAULT_STATE_FILE})",
        )
        self.parser.add_argument("--config", "-c", help="YAML configuration file")
        self.parser.add_argument(
            "--as", dest="caller",
            help="Account performing the operation (default: configured admin)",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors")

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._handlers: Dict[str, Callable[[argparse.Namespace], Any]] = {}
        self._register_commands()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def _add(self, name: str, handler: Callable[[argparse.Namespace], Any], help_text: str) -> argparse.ArgumentParser:
        self._handlers[name] = handler
        return self.subparsers.add_parser(name, help=help_text)

    def _register_commands(self) -> None:
        init = self._add("init", self._cmd_init, "Create an empty registry from configuration")
        init.add_argument("--force", action="store_true", help="Overwrite an existing state file")

        self._add("info", self._cmd_info, "Collection identity and issue counts")

        mint = self._add("mint", self._cmd_mint, "Mint an asset")
        mint.add_argument("to", help="Recipient account")
        mint.add_argument("asset_id", type=int, help="Asset id")

        transfer = self._add("transfer", self._cmd_transfer, "Transfer an asset")
        transfer.add_argument("from_account", metavar="from", help="Current holder")
        transfer.add_argument("to", help="Recipient account")
        transfer.add_argument("asset_id", type=int, help="Asset id")

        burn = self._add("burn", self._cmd_burn, "Burn an asset")
        burn.add_argument("asset_id", type=int, help="Asset id")

        approve = self._add("approve", self._cmd_approve, "Set or clear the delegate of an asset")
        approve.add_argument("asset_id", type=int, help="Asset id")
        approve.add_argument("delegate", nargs="?", default=None, help="Delegate (omit to clear)")

        operator = self._add("set-operator", self._cmd_set_operator, "Grant or revoke an operator")
        operator.add_argument("operator", help="Operator account")
        operator.add_argument("--revoke", action="store_true", help="Revoke instead of grant")

        self._add("pause", self._cmd_pause, "Pause minting")
        self._add("unpause", self._cmd_unpause, "Resume minting")

        owner = self._add("owner-of", self._cmd_owner_of, "Current holder of an asset")
        owner.add_argument("asset_id", type=int)

        balance = self._add("balance-of", self._cmd_balance_of, "Number of assets held")
        balance.add_argument("holder")

        assets = self._add("assets-of", self._cmd_assets_of, "Ids held by an account")
        assets.add_argument("holder")

        ident = self._add("identifier", self._cmd_identifier, "Identifier string of an asset")
        ident.add_argument("asset_id", type=int)

        self._add("state-root", self._cmd_state_root, "Digest of the current state")

        config = self._add("config", self._cmd_config, "Configuration management")
        config.add_argument("action", choices=["show", "validate", "schema"])

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _config_manager(self, args: argparse.Namespace) -> ConfigManager:
        manager = ConfigManager()
        if args.config:
            manager.load_from_file(args.config)
        else:
            manager.load_defaults()
        return manager

    def _load(self, args: argparse.Namespace) -> AssetRegistry:
        path = Path(args.state)
        if not path.exists():
            raise CLIError(f"state file not found: {path} (run `tessera init` first)")
        try:
            doc = load_json(path)
        except ValueError as e:
            raise CLIError(f"state file {path} is not valid JSON: {e}") from e
        audit = self._manager.config.observability.audit_enabled.get()
        return AssetRegistry.from_snapshot(doc, audit_enabled=audit)

    def _save(self, args: argparse.Namespace, registry: AssetRegistry) -> None:
        write_json(Path(args.state), registry.snapshot())

    def _caller(self, args: argparse.Namespace, registry: AssetRegistry) -> str:
        return args.caller or registry.admin

    def _mutate(self, args: argparse.Namespace, op: Callable[[AssetRegistry, str], Optional[Event]]) -> Dict[str, Any]:
        registry = self._load(args)
        event = op(registry, self._caller(args, registry))
        self._save(args, registry)
        out = _event_output(event)
        out["state_root"] = registry.state_root()
        return out

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _cmd_init(self, args: argparse.Namespace) -> Dict[str, Any]:
        path = Path(args.state)
        if path.exists() and not args.force:
            raise CLIError(f"state file already exists: {path} (use --force)")
        registry = AssetRegistry.from_config(self._manager.config)
        self._save(args, registry)
        return {"state": str(path), "state_root": registry.state_root(), **registry.identity.to_dict()}

    def _cmd_info(self, args: argparse.Namespace) -> Dict[str, Any]:
        registry = self._load(args)
        return {
            **registry.identity.to_dict(),
            "admin": registry.admin,
            "total_issued": registry.total_issued,
            "paused": registry.paused,
            "state_root": registry.state_root(),
        }

    def _cmd_mint(self, args: argparse.Namespace) -> Dict[str, Any]:
        return self._mutate(args, lambda r, c: r.mint(c, args.to, args.asset_id))

    def _cmd_transfer(self, args: argparse.Namespace) -> Dict[str, Any]:
        return self._mutate(args, lambda r, c: r.transfer(c, args.from_account, args.to, args.asset_id))

    def _cmd_burn(self, args: argparse.Namespace) -> Dict[str, Any]:
        return self._mutate(args, lambda r, c: r.burn(c, args.asset_id))

    def _cmd_approve(self, args: argparse.Namespace) -> Dict[str, Any]:
        return self._mutate(args, lambda r, c: r.approve(c, args.asset_id, args.delegate))

    def _cmd_set_operator(self, args: argparse.Namespace) -> Dict[str, Any]:
        return self._mutate(args, lambda r, c: r.set_operator_approval(c, args.operator, not args.revoke))

    def _cmd_pause(self, args: argparse.Namespace) -> Dict[str, Any]:
        out = self._mutate(args, lambda r, c: r.pause(c))
        out["paused"] = True
        return out

    def _cmd_unpause(self, args: argparse.Namespace) -> Dict[str, Any]:
        out = self._mutate(args, lambda r, c: r.unpause(c))
        out["paused"] = False
        return out

    def _cmd_owner_of(self, args: argparse.Namespace) -> Dict[str, Any]:
        return {"asset_id": args.asset_id, "holder": self._load(args).holder_of(args.asset_id)}

    def _cmd_balance_of(self, args: argparse.Namespace) -> Dict[str, Any]:
        return {"holder": args.holder, "held_count": self._load(args).held_count_of(args.holder)}

    def _cmd_assets_of(self, args: argparse.Namespace) -> Dict[str, Any]:
        return {"holder": args.holder, "assets": self._load(args).assets_of(args.holder)}

    def _cmd_identifier(self, args: argparse.Namespace) -> Dict[str, Any]:
        registry = self._load(args)
        return {"asset_id": args.asset_id, "identifier": registry.resolve_identifier_string(args.asset_id)}

    def _cmd_state_root(self, args: argparse.Namespace) -> Dict[str, Any]:
        return {"state_root": self._load(args).state_root()}

    def _cmd_config(self, args: argparse.Namespace) -> Any:
        if args.action == "show":
            return self._manager.config.to_dict()
        if args.action == "schema":
            return self._manager.export_schema()
        errors = self._manager.validate()
        if errors:
            raise CLIError("invalid configuration: " + "; ".join(errors))
        return {"valid": True, "loaded": [str(p) for p in self._manager.loaded_paths]}

    # -------------------------------------------------------------------------
    # Entry
    # -------------------------------------------------------------------------

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.print_help()
            return EXIT_USAGE

        fmt = OutputFormat(args.format)
        try:
            self._manager = self._config_manager(args)
            obs = self._manager.config.observability
            configure_logging(
                level="warning" if args.quiet else obs.log_level.get(),
                fmt=obs.log_format.get(),
            )
            result = self._handlers[args.command](args)
        except CLIError as e:
            print(f"error: {e}", file=sys.stderr)
            return e.exit_code
        except RegistryError as e:
            print(f"error: {e.code}: {e.message}", file=sys.stderr)
            return EXIT_REJECTED

        print(format_output(result, fmt))
        return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    return TesseraCLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
