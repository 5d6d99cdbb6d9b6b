from .app import create_app
from .surface import BridgeSurface, EventFeed, bridge_surface_factory

__all__ = ["create_app", "BridgeSurface", "EventFeed", "bridge_surface_factory"]
