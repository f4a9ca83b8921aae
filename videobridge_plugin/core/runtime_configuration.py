"""Runtime configuration of the videobridge: active versus pending values.

Version: 1.0.0

Port and TCP settings only take effect when the videobridge starts. The
values read right after activation are frozen in a StartupSnapshot; the
RuntimeConfiguration facade compares that snapshot with the live store to
tell the administrator whether a restart is needed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from videobridge_plugin.core.store import PortConfigurationStore


@dataclass(frozen=True)
class StartupSnapshot:
    """Values in effect since the videobridge became active."""

    single_port: int
    min_port: int
    max_port: int
    tcp_enabled: bool
    tcp_port: Optional[int]

    @classmethod
    def capture(cls, store: PortConfigurationStore) -> StartupSnapshot:
        """Read every setting from ``store`` once."""
        return cls(
            single_port=store.get_single_port(),
            min_port=store.get_min_port(),
            max_port=store.get_max_port(),
            tcp_enabled=store.is_tcp_enabled(),
            tcp_port=store.get_tcp_port(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RuntimeConfiguration:
    """Exposes configured values and detects drift from the active ones.

    Getters return the *configured* value, which may differ from the value in
    effect until the videobridge is restarted.
    """

    def __init__(self, store: PortConfigurationStore, snapshot: StartupSnapshot) -> None:
        self._store = store
        self._snapshot = snapshot

    @property
    def snapshot(self) -> StartupSnapshot:
        return self._snapshot

    def get_single_port(self) -> int:
        return self._store.get_single_port()

    def get_min_port(self) -> int:
        return self._store.get_min_port()

    def get_max_port(self) -> int:
        return self._store.get_max_port()

    def is_tcp_enabled(self) -> bool:
        return self._store.is_tcp_enabled()

    def get_tcp_port(self) -> Optional[int]:
        return self._store.get_tcp_port()

    def current(self) -> StartupSnapshot:
        """Read the configured values in the same shape as the snapshot."""
        return StartupSnapshot.capture(self._store)

    def describe_pending_changes(self) -> List[str]:
        """Return the names of the fields whose configured value drifted."""
        active = self._snapshot.to_dict()
        configured = self.current().to_dict()
        # Optional ints compare equal only when both are None or same value.
        return [name for name, value in active.items() if configured[name] != value]

    def restart_needed(self) -> bool:
        """Check if a restart is required to apply pending configuration changes."""
        return bool(self.describe_pending_changes())
