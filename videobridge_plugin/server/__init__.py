"""Admin status surface for the videobridge plugin."""

from .api import create_app, router
from .models import PluginStatus, PortSettings

__all__ = [
    "PluginStatus",
    "PortSettings",
    "create_app",
    "router",
]
