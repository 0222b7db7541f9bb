#!/usr/bin/env python3
"""
PAPERCHAIN CLI

Usage:
    paperchain [--format json|yaml|table|text] [--config FILE] <command> [subcommand]

Commands:
    registry run SCRIPT     Execute a transaction script against a fresh registry
    registry errors         List the error taxonomy
    config get PATH         Get a configuration value
    config set PATH VALUE   Set a configuration value (this process only)
    config show             Show all configuration
    config validate         Validate configuration
    config schema           Export configuration schema
    version                 Show version
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

import yaml

from paperchain import __version__


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TABLE = "table"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    elif fmt == OutputFormat.TABLE:
        return _format_table(data)
    else:
        return str(data)


def _format_table(data: Any) -> str:
    """Format data as ASCII table."""
    if isinstance(data, list) and data and isinstance(data[0], dict):
        headers = list(data[0].keys())
        rows = [[str(row.get(h, ""))[:40] for h in headers] for row in data]
        widths = [max(len(h), max(len(r[i]) for r in rows)) for i, h in enumerate(headers)]

        lines = []
        lines.append(" | ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
        lines.append("-+-".join("-" * w for w in widths))
        for row in rows:
            lines.append(" | ".join(c.ljust(widths[i]) for i, c in enumerate(row)))
        return "\n".join(lines)
    elif isinstance(data, dict):
        return "\n".join(
            f"{k}:\n{_format_table(v)}" if isinstance(v, list) and v and isinstance(v[0], dict)
            else f"{k}: {v}"
            for k, v in data.items()
        )
    return str(data)


class PaperchainCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="paperchain",
            description="Research paper registry",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"paperchain {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=["json", "yaml", "table", "text"],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="YAML configuration file to load before running",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress error messages",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        self._register_registry_commands()
        self._register_config_commands()
        self.subparsers.add_parser("version", help="Show version")

    def _register_registry_commands(self) -> None:
        registry = self.subparsers.add_parser("registry", help="Paper registry operations")
        registry_sub = registry.add_subparsers(dest="subcommand")

        # registry run
        run = registry_sub.add_parser("run", help="Execute a transaction script")
        run.add_argument("script", help="Transaction script (.yaml, .yml or .json)")
        run.add_argument(
            "--no-events",
            action="store_true",
            help="Omit the event log from the output",
        )

        # registry errors
        registry_sub.add_parser("errors", help="List error codes")

    def _register_config_commands(self) -> None:
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., registry.title_max_length)")

        set_cmd = config_sub.add_parser("set", help="Set configuration value")
        set_cmd.add_argument("path", help="Config path")
        set_cmd.add_argument("value", help="New value")

        config_sub.add_parser("show", help="Show all configuration")
        config_sub.add_parser("validate", help="Validate configuration")
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            fmt = OutputFormat(parsed.format)
            self._prepare(parsed)
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return 0

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except Exception as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 1

    def _prepare(self, args: argparse.Namespace) -> None:
        """Load configuration and apply logging settings."""
        from paperchain.config import ConfigError, get_config_manager
        from paperchain.observability import configure_logging

        mgr = get_config_manager()
        if args.config:
            try:
                mgr.load_from_file(args.config)
            except ConfigError as e:
                raise CLIError(str(e), exit_code=2) from e
        else:
            mgr.load_defaults()
        configure_logging()

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}".strip())

        return handler(args)

    def _handle_version(self, args: argparse.Namespace) -> Any:
        return {"name": "paperchain", "version": __version__}

    # Registry handlers
    def _handle_registry_run(self, args: argparse.Namespace) -> Any:
        from paperchain.config import ConfigError
        from paperchain.core import load_document
        from paperchain.environment import Environment
        from paperchain.schema import validate_transaction_script

        path = Path(args.script)
        if not path.exists():
            raise CLIError(f"Script not found: {path}", exit_code=2)
        try:
            script = load_document(path)
        except (ValueError, yaml.YAMLError) as e:
            raise CLIError(f"Cannot read script {path}: {e}", exit_code=2) from e

        errors = validate_transaction_script(script)
        if errors:
            raise CLIError(f"Invalid transaction script: {'; '.join(errors)}", exit_code=2)

        try:
            env = Environment(
                balances=script.get("balances"),
                default_caller=script.get("default_caller"),
                block_height=script.get("height", 0),
            )
        except ConfigError as e:
            raise CLIError(f"Configuration error: {e}") from e
        try:
            receipts = env.execute(script["transactions"])
        except (TypeError, ValueError) as e:
            raise CLIError(f"Transaction rejected by environment: {e}", exit_code=2) from e

        snapshot = env.snapshot()
        output = {
            "receipts": receipts,
            "state": snapshot["state"],
            "balances": snapshot["balances"],
            "transfers": snapshot["transfers"],
        }
        if not args.no_events:
            output["events"] = snapshot["events"]
        return output

    def _handle_registry_errors(self, args: argparse.Namespace) -> Any:
        from paperchain.errors import RegistryError, TransferError

        rows = [
            {"code": int(e), "name": e.name, "source": "registry", "reserved": e.reserved}
            for e in RegistryError
        ]
        rows.extend(
            {"code": int(e), "name": e.name, "source": "ledger", "reserved": False}
            for e in TransferError
        )
        return rows

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        from paperchain.config import ConfigError, get_config_manager
        try:
            return {"path": args.path, "value": get_config_manager().get(args.path)}
        except ConfigError as e:
            raise CLIError(str(e)) from e

    def _handle_config_set(self, args: argparse.Namespace) -> Any:
        from paperchain.config import ConfigError, get_config_manager
        mgr = get_config_manager()
        try:
            mgr.set(args.path, args.value)
        except ConfigError as e:
            raise CLIError(str(e)) from e
        return {"path": args.path, "value": mgr.get(args.path), "status": "updated"}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        from paperchain.config import get_config_manager
        return get_config_manager().config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        from paperchain.config import get_config_manager
        errors = get_config_manager().validate()
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        from paperchain.config import get_config_manager
        return get_config_manager().export_schema()


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    cli = PaperchainCLI()
    return cli.run(argv)


if __name__ == "__main__":
    sys.exit(main())
