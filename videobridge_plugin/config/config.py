"""
Configuration loading and models for the videobridge plugin.

Version: 1.0.0

``VideobridgePlugin.initialize`` reads an optional ``videobridge_plugin.yaml``
located next to the plugin binary when no config is passed to it; the command
line takes the file with ``--config``. Every section is optional; missing or broken files fall back
to defaults so that a bad file never keeps the plugin from starting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "videobridge_plugin.yaml"

# Subdomain under which the videobridge component is addressable on the host.
DEFAULT_SUBDOMAIN = "jitsi-videobridge"


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log verbosity level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        path: Log file destination path (None disables the file handler).
        reset_on_start: If True, delete log file on startup. If False, add separator.
    """

    level: str = "INFO"
    path: Optional[str] = None
    reset_on_start: bool = False


@dataclass
class ComponentConfig:
    """Configuration of the registered videobridge component.

    Attributes:
        subdomain: Subdomain used to register the component with the host.
        rest_api_enabled: Whether the component loads its REST API bundle.
            Inside a host server the host's own admin surface is used instead.
    """

    subdomain: str = DEFAULT_SUBDOMAIN
    rest_api_enabled: bool = False


@dataclass
class NativesConfig:
    """Configuration for the native resource bootstrap."""

    enabled: bool = True
    dir_name: str = "native"


@dataclass
class StoreConfig:
    """Location of the persisted configuration store, if any."""

    path: Optional[str] = None


@dataclass
class PluginConfig:
    """Top-level plugin configuration."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    component: ComponentConfig = field(default_factory=ComponentConfig)
    natives: NativesConfig = field(default_factory=NativesConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PluginConfig:
        """Create a config object from a dictionary, ignoring unknown keys."""
        return cls(
            logging=LoggingConfig(**_known_fields(LoggingConfig, data.get("logging"))),
            component=ComponentConfig(**_known_fields(ComponentConfig, data.get("component"))),
            natives=NativesConfig(**_known_fields(NativesConfig, data.get("natives"))),
            store=StoreConfig(**_known_fields(StoreConfig, data.get("store"))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "logging": {
                "level": self.logging.level,
                "path": self.logging.path,
                "reset_on_start": self.logging.reset_on_start,
            },
            "component": {
                "subdomain": self.component.subdomain,
                "rest_api_enabled": self.component.rest_api_enabled,
            },
            "natives": {
                "enabled": self.natives.enabled,
                "dir_name": self.natives.dir_name,
            },
            "store": {"path": self.store.path},
        }


def _known_fields(section_cls: type, data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    known = section_cls.__dataclass_fields__.keys()
    unknown = [k for k in data if k not in known]
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", section_cls.__name__, ", ".join(unknown))
    return {k: v for k, v in data.items() if k in known}


def get_config_path(root_path: Path) -> Path:
    """Return the config file path inside ``root_path``."""
    return root_path / CONFIG_FILE_NAME


def load_config(path: Path) -> PluginConfig:
    """Load configuration from a YAML file or a directory containing one."""
    config_path = get_config_path(path) if path.is_dir() else path

    if not config_path.is_file():
        logger.debug("No config file found at %s, using defaults.", config_path)
        return PluginConfig()

    logger.info("Loading config from %s", config_path)
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.error("Config file %s does not contain a mapping, using defaults.", config_path)
            return PluginConfig()
        return PluginConfig.from_dict(data)
    except (OSError, yaml.YAMLError, TypeError) as e:
        logger.error("Failed to load config file: %s", e)
        return PluginConfig()


def save_config(config: PluginConfig, path: Path) -> None:
    """Save configuration to ``path`` (a file, or a directory to hold one)."""
    config_path = get_config_path(path) if path.is_dir() else path
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False)
        logger.info("Saved plugin config to %s", config_path)
    except OSError as e:
        logger.error("Failed to save config file: %s", e)
        raise
