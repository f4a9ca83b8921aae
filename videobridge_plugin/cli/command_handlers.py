"""Handlers for the videobridge plugin command line.

Version: 1.0.0

Each handler returns a process exit code and prints its result as JSON so
that the output can be consumed by scripts.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from videobridge_plugin.core.exceptions import BootstrapError, InvalidFormatError, OutOfRangeError
from videobridge_plugin.core.natives import NativeResourceBootstrapper
from videobridge_plugin.core.settings import ALL_SETTINGS, find_by_name
from videobridge_plugin.core.store import PortConfigurationStore, YamlConfigurationBackend

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _print(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _open_store(store_path: Path) -> PortConfigurationStore:
    return PortConfigurationStore(YamlConfigurationBackend(store_path))


def handle_status(store_path: Path) -> int:
    """Print the configured port settings found in ``store_path``."""
    store = _open_store(store_path)
    _print({
        "store": str(store_path),
        "single_port": store.get_single_port(),
        "min_port": store.get_min_port(),
        "max_port": store.get_max_port(),
        "tcp_enabled": store.is_tcp_enabled(),
        "tcp_port": store.get_tcp_port(),
    })
    return EXIT_OK


def handle_set(store_path: Path, name: str, value: str) -> int:
    """Validate and write one setting, reporting whether it was applied."""
    setting = find_by_name(name)
    if setting is None:
        known = ", ".join(s.name for s in ALL_SETTINGS)
        logger.error("Unknown setting '%s' (known: %s)", name, known)
        return EXIT_USAGE

    store = _open_store(store_path)
    try:
        store.validate(setting, value)
    except InvalidFormatError as e:
        logger.error("%s", e)
        _print({"setting": name, "applied": False, "error": e.to_dict()})
        return EXIT_FAILURE
    except OutOfRangeError as e:
        # Dropped like a host write would be; not a failure.
        logger.warning("%s", e)
        _print({
            "setting": name,
            "applied": False,
            "value": store.get(setting),
            "error": e.to_dict(),
        })
        return EXIT_OK

    store.set(setting, value)
    _print({"setting": name, "applied": True, "value": store.get(setting)})
    return EXIT_OK


def handle_reset(store_path: Path, name: str) -> int:
    """Reset one setting to its default."""
    setting = find_by_name(name)
    if setting is None:
        logger.error("Unknown setting '%s'", name)
        return EXIT_USAGE

    store = _open_store(store_path)
    store.delete(setting)
    _print({"setting": name, "value": store.get(setting)})
    return EXIT_OK


def handle_bootstrap(binary_path: Path, native_dir_name: str) -> int:
    """Extract the native archive for this platform next to ``binary_path``."""
    bootstrapper = NativeResourceBootstrapper(binary_path, native_dir_name=native_dir_name)
    try:
        outcome = bootstrapper.ensure_native_resources()
    except BootstrapError as e:
        logger.error("Native bootstrap failed: %s", e)
        _print({"ok": False, "error": e.to_dict()})
        return EXIT_FAILURE

    _print({
        "ok": True,
        "native_dir": str(outcome.native_dir) if outcome.native_dir else None,
        "platform": outcome.platform,
        "already_present": outcome.already_present,
        "extracted": list(outcome.extracted),
    })
    return EXIT_OK
