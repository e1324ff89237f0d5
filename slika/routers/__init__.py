"""Aggregate router exports."""
from .follows import router as follows_router
from .items import router as items_router
from .profiles import router as profiles_router
from .realtime import router as realtime_router
from .uploads import router as uploads_router

__all__ = [
    "follows_router",
    "items_router",
    "profiles_router",
    "realtime_router",
    "uploads_router",
]
