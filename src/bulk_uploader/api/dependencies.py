"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from bulk_uploader.application.services import UploadOrchestrator
from bulk_uploader.bootstrap import build_upload_orchestrator
from bulk_uploader.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


@lru_cache(maxsize=1)
def get_upload_orchestrator() -> UploadOrchestrator:
    """Return singleton service graph."""

    return build_upload_orchestrator(get_settings())


__all__ = ["get_settings", "get_upload_orchestrator"]
