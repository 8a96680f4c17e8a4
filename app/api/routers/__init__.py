"""
app/api/routers package marker.
"""

from app.api.routers.mappings import router as mappings_router
from app.api.routers.sync import router as sync_router

__all__ = [
    "mappings_router",
    "sync_router",
]
