"""
Renderer component for the Dynamic Renderer.

Drives a headless browser to obtain the fully rendered HTML of a page,
including content generated by client-side JavaScript.
"""
from .playwright_manager import PlaywrightManager

__all__ = [
    "PlaywrightManager",
]
