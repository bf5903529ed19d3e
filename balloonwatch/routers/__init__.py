"""API routers package."""
from balloonwatch.routers import balloons, system

__all__ = ["balloons", "system"]
