"""Typed access to the videobridge configuration store.

Version: 1.0.0

This module provides:
- ConfigurationBackend: the key/value contract of the videobridge's own
  configuration service (string values, typed reads with defaults)
- InMemoryConfigurationBackend / YamlConfigurationBackend: two backends
- PortConfigurationStore: get/set/delete for the five port settings

Write policy:
- Unparsable input raises InvalidFormatError and leaves the store unchanged
- Parsable but out-of-range integers are dropped silently (no error, no log)
- Valid values are written with a single backend call

The silent drop mirrors what the videobridge itself does with out-of-range
ports and is kept for compatibility with existing admin consoles.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

import yaml

from videobridge_plugin.core.exceptions import InvalidFormatError, OutOfRangeError
from videobridge_plugin.core.host import HostProperties
from videobridge_plugin.core.settings import (
    DISABLE_TCP,
    MAX_PORT,
    MIN_PORT,
    SINGLE_PORT,
    TCP_PORT,
    ALL_SETTINGS,
    Setting,
    SettingKind,
    SettingValue,
)

logger = logging.getLogger(__name__)

# ASCII decimal digits only, as typed into the host admin console.
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_TRUE_STRINGS = ("true",)
_FALSE_STRINGS = ("false",)


# =============================================================================
# BACKENDS
# =============================================================================

@runtime_checkable
class ConfigurationBackend(Protocol):
    """Key/value configuration service used by the videobridge."""

    def get_int(self, key: str, default: int) -> int:
        ...

    def get_boolean(self, key: str, default: bool) -> bool:
        ...

    def set_property(self, key: str, value: str) -> None:
        ...


def _parse_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _parse_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUE_STRINGS:
        return True
    if normalized in _FALSE_STRINGS:
        return False
    return default


class InMemoryConfigurationBackend:
    """Dictionary-backed configuration service guarded by a lock."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, str] = dict(initial or {})

    def get_string(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def get_int(self, key: str, default: int) -> int:
        return _parse_int(self.get_string(key), default)

    def get_boolean(self, key: str, default: bool) -> bool:
        return _parse_bool(self.get_string(key), default)

    def set_property(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def to_dict(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._values)


class YamlConfigurationBackend(InMemoryConfigurationBackend):
    """Configuration service persisted as a flat YAML mapping.

    Every write rewrites the whole file while holding the lock, so readers
    never observe a half-applied update.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self._path = Path(path)
        self.reload()

    @property
    def path(self) -> Path:
        return self._path

    def reload(self) -> None:
        """Re-read the file, replacing the in-memory values."""
        values: Dict[str, str] = {}
        if self._path.exists():
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                if isinstance(data, dict):
                    values = {str(k): _to_store_string(v) for k, v in data.items()}
                else:
                    logger.warning("Ignoring non-mapping store file %s", self._path)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Failed to load configuration store %s: %s", self._path, e)
        with self._lock:
            self._values = values

    def set_property(self, key: str, value: str) -> None:
        """Persist ``key`` then publish it; a failed write changes nothing.

        Raises:
            OSError: If the file cannot be written
        """
        with self._lock:
            values = {**self._values, key: value}
            self._write(values)
            self._values = values
        logger.debug("Persisted %s=%s to %s", key, value, self._path)

    def _write(self, values: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(values, f, default_flow_style=False)
            os.replace(temp_path, self._path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise


def _to_store_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# =============================================================================
# PORT CONFIGURATION STORE
# =============================================================================

class PortConfigurationStore:
    """Typed accessor for the port settings over a ConfigurationBackend.

    Reads always go to the backend; nothing is cached here.

    Usage:
        store = PortConfigurationStore(backend)
        store.set(SINGLE_PORT, "12000")
        store.get_single_port()  # 12000
    """

    def __init__(self, backend: ConfigurationBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> ConfigurationBackend:
        return self._backend

    def get(self, setting: Setting) -> SettingValue:
        """Return the stored value, or the setting default when absent."""
        if setting.kind is SettingKind.BOOLEAN:
            return self._backend.get_boolean(setting.store_key, bool(setting.default))
        return self._backend.get_int(setting.store_key, int(setting.default))

    def set(self, setting: Setting, raw_value: Any) -> bool:
        """Validate ``raw_value`` and write it to the store.

        Args:
            setting: Target setting
            raw_value: Value as received from the host (usually a string)

        Returns:
            True if the value was written, False if it was out of range
            and therefore dropped

        Raises:
            InvalidFormatError: If the value cannot be parsed
        """
        try:
            value = self.validate(setting, raw_value)
        except OutOfRangeError:
            return False
        self._backend.set_property(setting.store_key, _to_store_string(value))
        return True

    def validate(self, setting: Setting, raw_value: Any) -> SettingValue:
        """Parse ``raw_value`` and check it against the setting range.

        Raises:
            InvalidFormatError: If the value cannot be parsed
            OutOfRangeError: If an integer lies outside the valid range
        """
        if setting.kind is SettingKind.BOOLEAN:
            return self._parse_boolean(setting, raw_value)

        value = self._parse_integer(setting, raw_value)
        if not setting.in_range(value):
            raise OutOfRangeError(setting.name, value, setting.valid_range)
        return value

    def delete(self, setting: Setting) -> None:
        """Reset ``setting`` to its default as a concrete stored value."""
        self._backend.set_property(setting.store_key, _to_store_string(setting.default))

    # -------------------------------------------------------------------------
    # Named accessors
    # -------------------------------------------------------------------------

    def get_single_port(self) -> int:
        return int(self.get(SINGLE_PORT))

    def get_min_port(self) -> int:
        return int(self.get(MIN_PORT))

    def get_max_port(self) -> int:
        return int(self.get(MAX_PORT))

    def is_tcp_enabled(self) -> bool:
        # The store keeps a "disable" flag.
        return not self.get(DISABLE_TCP)

    def get_tcp_port(self) -> Optional[int]:
        """Return the TCP port, or None when the default port is to be used."""
        value = int(self.get(TCP_PORT))
        if value == TCP_PORT.nullable_sentinel:
            return None
        return value

    # -------------------------------------------------------------------------
    # Host synchronisation
    # -------------------------------------------------------------------------

    def initialize_from_host(self, host_properties: HostProperties) -> None:
        """Copy the host-exposed values (or defaults) into the store.

        Nullable settings without a host value are left untouched so that
        their "unset" state survives.
        """
        for setting in ALL_SETTINGS:
            raw = host_properties.get_property(setting.host_property)
            if raw is None:
                if setting.nullable:
                    continue
                raw = setting.default
            try:
                self.set(setting, raw)
            except InvalidFormatError as e:
                logger.error("Error setting %s from host property: %s", setting.name, e)

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse_integer(setting: Setting, raw_value: Any) -> int:
        if isinstance(raw_value, bool) or raw_value is None:
            raise InvalidFormatError(
                f"Value for '{setting.name}' is not an integer", setting.name, raw_value
            )
        if isinstance(raw_value, int):
            return raw_value
        text = str(raw_value)
        if not _INTEGER_PATTERN.fullmatch(text):
            raise InvalidFormatError(
                f"Value for '{setting.name}' is not an integer", setting.name, raw_value
            )
        return int(text)

    @staticmethod
    def _parse_boolean(setting: Setting, raw_value: Any) -> bool:
        if isinstance(raw_value, bool):
            return raw_value
        if raw_value is not None:
            normalized = str(raw_value).strip().lower()
            if normalized in _TRUE_STRINGS:
                return True
            if normalized in _FALSE_STRINGS:
                return False
        raise InvalidFormatError(
            f"Value for '{setting.name}' is not a boolean", setting.name, raw_value
        )
