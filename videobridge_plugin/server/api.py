"""
Admin status API for the videobridge plugin.

Version: 1.0.0

Read-only endpoints meant for the host's administration console. The plugin
instance is looked up on ``app.state.videobridge_plugin``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI, HTTPException, Request

from videobridge_plugin import __version__
from videobridge_plugin.core.lifecycle import VideobridgePlugin
from videobridge_plugin.core.settings import ALL_SETTINGS
from videobridge_plugin.server.models import PluginStatus

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/videobridge", tags=["videobridge"])


def _get_plugin(request: Request) -> VideobridgePlugin:
    plugin = getattr(request.app.state, "videobridge_plugin", None)
    if plugin is None:
        raise HTTPException(status_code=503, detail="Videobridge plugin not attached")
    return plugin


@router.get("/status", response_model=PluginStatus)
async def get_status(request: Request) -> PluginStatus:
    """Return the lifecycle state, configured and active port settings."""
    return PluginStatus.from_plugin(_get_plugin(request))


@router.get("/restart-needed")
async def get_restart_needed(request: Request) -> dict:
    """Tell whether pending configuration changes need a restart."""
    status = PluginStatus.from_plugin(_get_plugin(request))
    if not status.running:
        raise HTTPException(status_code=409, detail=f"Videobridge is not running ({status.state})")
    return {"restart_needed": status.restart_needed, "pending_changes": status.pending_changes}


@router.get("/settings")
async def get_settings() -> dict:
    """Describe the watched host properties and their defaults."""
    return {
        "settings": [
            {
                "name": s.name,
                "host_property": s.host_property,
                "kind": s.kind.value,
                "default": s.default,
            }
            for s in ALL_SETTINGS
        ]
    }


def create_app(plugin: VideobridgePlugin) -> FastAPI:
    """Create a FastAPI application exposing the status endpoints."""
    app = FastAPI(title="Videobridge Plugin", version=__version__)
    app.state.videobridge_plugin = plugin
    app.include_router(router)
    logger.debug("Status API created for plugin in state %s", plugin.state.value)
    return app
