"""
Classifier component for the Dynamic Renderer.
"""
from .request_classifier import ClassificationResult, RequestClassifier

__all__ = [
    "ClassificationResult",
    "RequestClassifier",
]
