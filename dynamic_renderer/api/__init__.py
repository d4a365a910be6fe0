"""
API sub-package for the Dynamic Renderer.

Contains the FastAPI edge gateway: application factory (`api.main.create_app`)
and the catch-all dispatch route.
"""

__all__ = []
