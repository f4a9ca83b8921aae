"""Keeps the videobridge configuration store in sync with host properties."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from videobridge_plugin.core.exceptions import InvalidFormatError
from videobridge_plugin.core.settings import find_by_host_property
from videobridge_plugin.core.store import PortConfigurationStore

logger = logging.getLogger(__name__)


class PropertyChangeListener:
    """Writes watched host property changes into the port store.

    Properties that do not map to a known setting are ignored. XML-sourced
    notifications are handled exactly like regular ones.
    """

    def __init__(self, store: PortConfigurationStore) -> None:
        self._store = store

    def property_set(self, name: str, params: Optional[Dict[str, Any]]) -> None:
        setting = find_by_host_property(name)
        if setting is None:
            return

        raw_value = (params or {}).get("value")

        try:
            written = self._store.set(setting, raw_value)
        except InvalidFormatError as e:
            logger.error("Error setting port property %s: %s", name, e)
            return

        if written:
            logger.info("Updated %s to %s (restart required to apply)", setting.name, raw_value)

    def property_deleted(self, name: str, params: Optional[Dict[str, Any]] = None) -> None:
        setting = find_by_host_property(name)
        if setting is None:
            return

        self._store.delete(setting)
        logger.info("Reset %s to default %s", setting.name, setting.default)

    def xml_property_set(self, name: str, params: Optional[Dict[str, Any]]) -> None:
        self.property_set(name, params)

    def xml_property_deleted(self, name: str, params: Optional[Dict[str, Any]] = None) -> None:
        self.property_deleted(name, params)
