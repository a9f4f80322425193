#!/usr/bin/env python3
"""
bitauth CLI

Command-line interface for creating wallets from authentication templates.

Usage:
    bitauth <command> [subcommand] [options]

Commands:
    wallet new   Create a new wallet for one entity of a template
    template     List available templates
    config       Configuration management

Examples:
    bitauth wallet new 'Personal Wallet' --alias=personal --template=p2pkh --entity=owner
    bitauth wallet new 'Business Wallet' --alias=business --template=2-of-2-recoverable \\
        --entity=signer_1 --wallet-data='{"delay_seconds":"2592000"}'
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from typing import Any, List, Optional

from bitauth import __version__
from bitauth.config import BitauthConfig, get_config_manager
from bitauth.core import bash_escape_single_quote
from bitauth.errors import BitauthError, InputError
from bitauth.observability import (
    BitauthLayer,
    configure_logging,
    generate_correlation_id,
    get_logger,
    set_correlation_id,
)

logger = get_logger("cli", BitauthLayer.CLI)


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(BitauthError):
    """CLI error with exit code."""

    code = "cli"

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        import yaml
        return yaml.dump(data, default_flow_style=False)
    elif isinstance(data, dict):
        return "\n".join(f"{k}: {v}" for k, v in data.items())
    return str(data)


def parse_json_flag(value: Optional[str], flag: str) -> Any:
    """Parse a JSON-valued flag, naming the flag when the JSON is invalid."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise InputError(f"The --{flag} flag contains invalid JSON: {e}") from e


def equivalent_command(wallet_name: str, wallet_alias: str, template_alias: Optional[str],
                       entity_id: str, wallet_data: Any = None, address_data: Any = None,
                       template_json: Any = None) -> str:
    """The non-interactive command line that reproduces a wallet creation."""
    parts = [
        f"bitauth wallet new '{bash_escape_single_quote(wallet_name)}'",
        f"--alias='{bash_escape_single_quote(wallet_alias)}'",
    ]
    if template_alias is not None:
        parts.append(f"--template='{bash_escape_single_quote(template_alias)}'")
    elif template_json is not None:
        parts.append(f"--template-json='{bash_escape_single_quote(json.dumps(template_json))}'")
    parts.append(f"--entity='{bash_escape_single_quote(entity_id)}'")
    if wallet_data is not None:
        parts.append(f"--wallet-data='{bash_escape_single_quote(json.dumps(wallet_data))}'")
    if address_data is not None:
        parts.append(f"--address-data='{bash_escape_single_quote(json.dumps(address_data))}'")
    return " ".join(parts)


class BitauthCLI:
    """Main CLI application."""

    def __init__(self, config: Optional[BitauthConfig] = None):
        self._config = config
        self._argv: List[str] = []
        self.parser = argparse.ArgumentParser(
            prog="bitauth",
            description="Create and manage wallets from authentication templates",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"bitauth {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=["json", "yaml", "text"],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )
        self.parser.add_argument(
            "--data-dir",
            help="Data directory (default: $BITAUTH_DATA_DIR or ~/.bitauth)",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    @property
    def config(self) -> BitauthConfig:
        if self._config is None:
            manager = get_config_manager()
            manager.load_defaults()
            self._config = manager.config
        return self._config

    def _register_commands(self) -> None:
        """Register all command groups."""
        self._register_wallet_commands()
        self._register_template_commands()
        self._register_config_commands()

    def _register_wallet_commands(self) -> None:
        """Register wallet subcommands."""
        wallet = self.subparsers.add_parser("wallet", help="Wallet management")
        wallet_sub = wallet.add_subparsers(dest="subcommand")

        new = wallet_sub.add_parser("new", help="Create a new wallet")
        new.add_argument("wallet_name", nargs="?", default="", metavar="WALLET_NAME",
                         help="The name of the new wallet")
        new.add_argument("--alias", help="The alias of the new wallet")
        new.add_argument("--entity", help="The role performed by the new wallet")
        source = new.add_mutually_exclusive_group()
        source.add_argument("--template", help="The alias of the template to use")
        source.add_argument("--template-json", help="The template to use in JSON format")
        new.add_argument("--template-parameters",
                         help="The parameters to pass to a dynamic template (not yet supported)")
        new.add_argument("--wallet-data", help="An object containing the wallet data in JSON format")
        new.add_argument("--address-data", help="An array of address data in JSON format")

    def _register_template_commands(self) -> None:
        """Register template commands."""
        template = self.subparsers.add_parser("template", help="List available templates")
        template.add_argument("--json", action="store_true", help="Return output in JSON format")

    def _register_config_commands(self) -> None:
        """Register config subcommands."""
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., wallet.network)")

        config_sub.add_parser("show", help="Show all configuration")
        config_sub.add_parser("validate", help="Validate configuration")
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        self._argv = list(args) if args is not None else sys.argv[1:]
        parsed = self.parser.parse_args(self._argv)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            set_correlation_id(generate_correlation_id())
            if parsed.data_dir:
                self.config.storage.data_directory.set(parsed.data_dir)
            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return 0

        except BitauthError as e:
            logger.error(e.message, error_code=e.code)
            if not parsed.quiet:
                print(f"✖ {e.message}", file=sys.stderr)
            return getattr(e, "exit_code", 1)

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}".strip())

        return handler(args)

    def _data_directory(self):
        from bitauth.storage import DataDirectory

        data_dir = DataDirectory(self.config.data_directory).ensure()
        obs = self.config.observability
        configure_logging(
            level=obs.log_level.get(),
            log_format=obs.log_format.get(),
            log_file=data_dir.root / obs.log_file_name.get(),
            console=False,
        )
        logger.debug("command", argv=self._argv)
        return data_dir

    # Wallet handlers
    def _handle_wallet_new(self, args: argparse.Namespace) -> Any:
        from bitauth.primitives import load_primitives, secure_random_bytes
        from bitauth.provision import CreationSettings, ProvisioningDefaults, provision_wallet
        from bitauth.storage import TemplateRegistry, find_wallet, write_wallet

        if args.template_parameters is not None and args.template is None:
            raise InputError("--template-parameters requires --template.")

        settings = CreationSettings(
            wallet_name=args.wallet_name,
            wallet_alias=args.alias,
            template_alias=args.template,
            template=parse_json_flag(args.template_json, "template-json"),
            entity_id=args.entity,
            wallet_data=parse_json_flag(args.wallet_data, "wallet-data"),
            address_data=parse_json_flag(args.address_data, "address-data"),
            template_parameters=args.template_parameters,
        )

        data_dir = self._data_directory()
        registry = TemplateRegistry.load(data_dir)

        wallet_settings = self.config.wallet
        outcome = provision_wallet(
            settings,
            registry,
            secure_random_bytes,
            load_primitives(),
            ProvisioningDefaults(
                hd_public_key_derivation_path=wallet_settings.hd_public_key_derivation_path.get(),
                network=wallet_settings.network.get(),
            ),
        )
        if not args.quiet:
            for advisory in outcome.warnings:
                print(advisory, file=sys.stderr)
        wallet = outcome.unwrap()

        if find_wallet(data_dir, wallet.wallet_alias) is not None:
            raise CLIError(f"A wallet with the alias '{wallet.wallet_alias}' already exists.")

        paths = write_wallet(data_dir, wallet.wallet_alias, wallet.proposal, wallet.secret)
        command = equivalent_command(
            settings.wallet_name.strip(),
            wallet.wallet_alias,
            settings.template_alias,
            wallet.entity_id,
            settings.wallet_data,
            settings.address_data,
            template_json=settings.template,
        )
        logger.debug("equivalent command", command=command)
        if not args.quiet:
            print(f"Equivalent command: $ {command}", file=sys.stderr)
        return {
            "walletAlias": wallet.wallet_alias,
            "entityId": wallet.entity_id,
            "proposal": str(paths["proposal"]),
            "secret": str(paths["secret"]),
        }

    # Template handlers
    def _handle_template(self, args: argparse.Namespace) -> Any:
        from bitauth.storage import TemplateRegistry

        data_dir = self._data_directory()
        registry = TemplateRegistry.load(data_dir)
        if args.json:
            return registry.to_dict()

        lines = []
        for _, listing in registry.items():
            lines.append(listing.unique_name)
            for entity_id, entity in listing.template.entities.items():
                lines.append(f"  --entity={entity_id}  {entity.display_name}")
        names = "\n".join(lines)
        print(
            f"\nAvailable Bitauth Templates\n===\n{names}\n\n"
            f"To import a template, copy the template file into: {data_dir.templates}"
        )
        return None

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return {"path": args.path, "value": mgr.get(args.path)}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        return self.config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        errors = mgr.validate()
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        return get_config_manager().export_schema()


def main() -> int:
    """CLI entry point."""
    cli = BitauthCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
