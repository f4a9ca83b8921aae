"""Pydantic models for the videobridge admin status surface."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from videobridge_plugin.core.exceptions import PluginNotRunningError
from videobridge_plugin.core.lifecycle import VideobridgePlugin


class PortSettings(BaseModel):
    """Port and TCP configuration, as configured or as active."""

    single_port: int
    min_port: int
    max_port: int
    tcp_enabled: bool
    tcp_port: Optional[int] = Field(
        default=None, description="TCP port, or null when the default is used."
    )


class PluginStatus(BaseModel):
    """Response model for the videobridge status endpoint."""

    running: bool
    state: str
    subdomain: Optional[str] = None
    configured: Optional[PortSettings] = Field(
        default=None, description="Values in the configuration store."
    )
    active: Optional[PortSettings] = Field(
        default=None, description="Values in effect since the videobridge started."
    )
    restart_needed: bool = Field(
        default=False, description="True when configured values differ from active ones."
    )
    pending_changes: List[str] = Field(
        default_factory=list, description="Names of the settings awaiting a restart."
    )

    @classmethod
    def from_plugin(cls, plugin: VideobridgePlugin) -> PluginStatus:
        """Build the status of ``plugin`` without raising when it is not running."""
        if not plugin.is_running:
            return cls(running=False, state=plugin.state.value)

        try:
            runtime = plugin.get_runtime_configuration()
        except PluginNotRunningError:
            # Destroyed concurrently.
            return cls(running=False, state=plugin.state.value)

        pending = runtime.describe_pending_changes()
        return cls(
            running=True,
            state=plugin.state.value,
            subdomain=plugin.subdomain,
            configured=PortSettings(**runtime.current().to_dict()),
            active=PortSettings(**runtime.snapshot.to_dict()),
            restart_needed=bool(pending),
            pending_changes=pending,
        )
