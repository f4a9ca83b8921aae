"""Contracts of the host server consumed by the plugin.

Version: 1.0.0

The host server is an external collaborator. The plugin only needs a few
narrow capabilities from it, described here as protocols so that tests and
alternative hosts can supply their own implementations.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class HostProperties(Protocol):
    """Read access to the host's administrator-editable properties."""

    def get_property(self, name: str) -> Optional[str]:
        ...


@runtime_checkable
class ComponentManager(Protocol):
    """Host registry of addressable components.

    Implementations raise ``ComponentError`` when they refuse a request.
    """

    def add_component(self, subdomain: str, component: Any) -> None:
        ...

    def remove_component(self, subdomain: str) -> None:
        ...


@dataclass(frozen=True)
class ServerInfo:
    """Identity of the host server the component is attached to."""

    hostname: str
    domain: str


class HostPropertyMap:
    """Thread-safe in-memory ``HostProperties`` implementation.

    Used by embedding hosts and tests; a real host may expose its own
    property service instead.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, str] = {}
        for name, value in (initial or {}).items():
            self._values[name] = _to_property_string(value)

    def get_property(self, name: str) -> Optional[str]:
        with self._lock:
            return self._values.get(name)

    def set_property(self, name: str, value: Any) -> None:
        with self._lock:
            self._values[name] = _to_property_string(value)

    def delete_property(self, name: str) -> None:
        with self._lock:
            self._values.pop(name, None)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._values))

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


def _to_property_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
