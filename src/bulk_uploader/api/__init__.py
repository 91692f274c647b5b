"""HTTP API public API."""

from bulk_uploader.api.router import api_router

__all__ = ["api_router"]
