"""Static catalogue of the videobridge port settings.

Version: 1.0.0

Each setting is known under two names: the host property the administrator
edits, and the key the videobridge configuration store reads. The keys are
shared with deployed installations and must stay verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

SettingValue = Union[int, bool]

PORT_RANGE: Tuple[int, int] = (1, 65535)

# Stored in the TCP port key when no explicit port is configured.
TCP_PORT_UNSET = -1


class SettingKind(str, Enum):
    """Value type of a setting."""

    INTEGER = "integer"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class Setting:
    """A named, typed, bounded configuration value with a default."""

    name: str
    host_property: str
    store_key: str
    kind: SettingKind
    default: SettingValue
    valid_range: Optional[Tuple[int, int]] = None
    nullable_sentinel: Optional[int] = None

    @property
    def nullable(self) -> bool:
        return self.nullable_sentinel is not None

    def in_range(self, value: int) -> bool:
        if self.valid_range is None:
            return True
        low, high = self.valid_range
        return low <= value <= high


# =============================================================================
# SETTINGS
# =============================================================================

SINGLE_PORT = Setting(
    name="single_port",
    host_property="org.jitsi.videobridge.media.SINGLE_PORT_HARVESTER_PORT",
    store_key="org.jitsi.videobridge.SINGLE_PORT_HARVESTER_PORT",
    kind=SettingKind.INTEGER,
    default=10000,
    valid_range=PORT_RANGE,
)

MIN_PORT = Setting(
    name="min_port",
    host_property="org.jitsi.videobridge.media.MIN_PORT_NUMBER",
    store_key="net.java.sip.communicator.service.media.MIN_PORT_NUMBER",
    kind=SettingKind.INTEGER,
    default=10001,
    valid_range=PORT_RANGE,
)

MAX_PORT = Setting(
    name="max_port",
    host_property="org.jitsi.videobridge.media.MAX_PORT_NUMBER",
    store_key="net.java.sip.communicator.service.media.MAX_PORT_NUMBER",
    kind=SettingKind.INTEGER,
    default=20000,
    valid_range=PORT_RANGE,
)

# The store keeps a "disable" flag; TCP is enabled when it is false.
DISABLE_TCP = Setting(
    name="disable_tcp",
    host_property="org.jitsi.videobridge.media.DISABLE_TCP_HARVESTER",
    store_key="org.jitsi.videobridge.DISABLE_TCP_HARVESTER",
    kind=SettingKind.BOOLEAN,
    default=False,
)

TCP_PORT = Setting(
    name="tcp_port",
    host_property="org.jitsi.videobridge.media.TCP_HARVESTER_PORT",
    store_key="org.jitsi.videobridge.TCP_HARVESTER_PORT",
    kind=SettingKind.INTEGER,
    default=TCP_PORT_UNSET,
    valid_range=PORT_RANGE,
    nullable_sentinel=TCP_PORT_UNSET,
)

ALL_SETTINGS: Tuple[Setting, ...] = (
    SINGLE_PORT,
    MIN_PORT,
    MAX_PORT,
    DISABLE_TCP,
    TCP_PORT,
)

_BY_HOST_PROPERTY: Dict[str, Setting] = {s.host_property: s for s in ALL_SETTINGS}
_BY_NAME: Dict[str, Setting] = {s.name: s for s in ALL_SETTINGS}


def find_by_host_property(property_name: str) -> Optional[Setting]:
    """Return the setting watched under ``property_name``, if any."""
    return _BY_HOST_PROPERTY.get(property_name)


def find_by_name(name: str) -> Optional[Setting]:
    return _BY_NAME.get(name)
