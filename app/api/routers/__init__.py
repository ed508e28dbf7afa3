"""
app/api/routers package marker.
"""

from app.api.routers.ser_router import router as ser_router

__all__ = [
    "ser_router",
]
