"""
Components sub-package for the Dynamic Renderer.

Building blocks shared by the capture pipeline and the edge gateway:
rendering, sanitizing, storage, request classification and dispatch.
"""

from .renderer.playwright_manager import PlaywrightManager
from .sanitizer.document_sanitizer import DocumentSanitizer
from .classifier.request_classifier import ClassificationResult, RequestClassifier
from .storage import (
    StorageBackend,
    HttpObjectStorage,
    LocalFileStorage,
    create_storage,
)
from .gateway import EdgeDispatcher, OriginProxy, RoutingDecision, RouteKind

__all__ = [
    "PlaywrightManager",
    "DocumentSanitizer",
    "ClassificationResult",
    "RequestClassifier",
    "StorageBackend",
    "HttpObjectStorage",
    "LocalFileStorage",
    "create_storage",
    "EdgeDispatcher",
    "OriginProxy",
    "RoutingDecision",
    "RouteKind",
]
