"""
API Routes sub-package for the Dynamic Renderer gateway.

The catch-all router from `gateway_routes.py` is re-exported here for
inclusion in the application built by `api/main.py`.
"""

from .gateway_routes import router as gateway_router

__all__ = [
    "gateway_router",
]
