"""API module."""

from seriesledger.api.routes import router

__all__ = ["router"]
