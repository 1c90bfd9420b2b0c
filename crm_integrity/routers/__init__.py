"""API routers."""

from crm_integrity.routers.internal import router as internal_router

__all__ = [
    "internal_router",
]
