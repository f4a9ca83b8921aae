"""
Command line entrypoint for the videobridge plugin.

Version: 1.0.0
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from videobridge_plugin import __version__
from videobridge_plugin.cli.command_handlers import (
    EXIT_USAGE,
    handle_bootstrap,
    handle_reset,
    handle_set,
    handle_status,
)
from videobridge_plugin.config import PluginConfig, load_config
from videobridge_plugin.core.logging_utils import configure_logging, normalize_log_level
from videobridge_plugin.core.settings import ALL_SETTINGS

logger = logging.getLogger(__name__)

DEFAULT_STORE_FILE = "videobridge_store.yaml"


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""

    parser = argparse.ArgumentParser(description="Videobridge host plugin tools")
    parser.add_argument("--version", action="version", version=f"videobridge-plugin {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="Plugin config file or directory")
    parser.add_argument("--store", type=Path, default=None, help="Configuration store YAML file")

    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("status", help="Show the configured port settings")

    setting_names = [s.name for s in ALL_SETTINGS]
    set_parser = subcommands.add_parser("set", help="Validate and store a setting")
    set_parser.add_argument("name", choices=setting_names, help="Setting name")
    set_parser.add_argument("value", help="New value")

    reset_parser = subcommands.add_parser("reset", help="Reset a setting to its default")
    reset_parser.add_argument("name", choices=setting_names, help="Setting name")

    bootstrap_parser = subcommands.add_parser(
        "bootstrap", help="Extract native libraries next to the plugin binary"
    )
    bootstrap_parser.add_argument("binary", type=Path, help="Path to the plugin binary")

    return parser


def _resolve_store_path(args: argparse.Namespace, config: PluginConfig) -> Path:
    if args.store is not None:
        return args.store
    if config.store.path:
        return Path(config.store.path)
    return Path.cwd() / DEFAULT_STORE_FILE


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else PluginConfig()
    configure_logging(config.logging, process_wide=True)
    logger.debug("Log level set to %s", normalize_log_level(config.logging.level))

    if args.command == "bootstrap":
        return handle_bootstrap(args.binary, config.natives.dir_name)

    store_path = _resolve_store_path(args, config)
    if args.command == "status":
        return handle_status(store_path)
    if args.command == "set":
        return handle_set(store_path, args.name, args.value)
    if args.command == "reset":
        return handle_reset(store_path, args.name)

    parser.print_help()
    return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
