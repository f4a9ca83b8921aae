"""Configuration system for the videobridge plugin."""

from .config import (
    CONFIG_FILE_NAME,
    DEFAULT_SUBDOMAIN,
    ComponentConfig,
    LoggingConfig,
    NativesConfig,
    PluginConfig,
    StoreConfig,
    load_config,
    save_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_SUBDOMAIN",
    "ComponentConfig",
    "LoggingConfig",
    "NativesConfig",
    "PluginConfig",
    "StoreConfig",
    "load_config",
    "save_config",
]
