"""
Sanitizer component for the Dynamic Renderer.

Cleans rendered HTML before it is written to storage.
"""
from .document_sanitizer import DocumentSanitizer

__all__ = [
    "DocumentSanitizer",
]
