"""Route modules public API."""

from bulk_uploader.api.routes.health import router as health_router
from bulk_uploader.api.routes.uploads import router as uploads_router

__all__ = ["health_router", "uploads_router"]
