"""
Custom exception classes for the Dynamic Renderer.
"""
from typing import Optional


class DynamicRendererError(Exception):
    """
    Base class for all custom exceptions in the Dynamic Renderer.

    Attributes:
        message (str): A human-readable description of the error.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


# --- Configuration Related Exceptions ---
class ConfigurationError(DynamicRendererError):
    """
    Raised when configuration values are present but invalid
    (e.g., a negative TTL or an unknown storage backend).
    """
    def __init__(self, message: str):
        super().__init__(message)


# --- Component Related Exceptions ---
class ComponentError(DynamicRendererError):
    """
    A general base class for errors originating from within a specific component
    (Renderer, Storage, Gateway).

    Attributes:
        component_name (str): Name of the component where the error originated.
    """
    def __init__(self, component_name: str, message: str):
        full_message = f"Error in component '{component_name}': {message}"
        super().__init__(full_message)
        self.component_name = component_name


class RendererError(ComponentError):
    """Raised for headless browser failures (launch, navigation timeout, HTML extraction)."""
    def __init__(self, message: str):
        super().__init__(component_name="Renderer", message=message)


class StorageError(ComponentError):
    """
    Raised for errors specific to the Storage component (object store requests,
    file system operations).

    Attributes:
        original_exception (Optional[Exception]): The underlying exception, if any.
    """
    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        self.original_exception = original_exception
        full_message = message
        if original_exception:
            full_message += f" (Original exception: {str(original_exception)})"
        super().__init__(component_name="Storage", message=full_message)


class StorageNotFoundError(StorageError):
    """
    Raised when a key does not exist in the storage backend.

    Attributes:
        key (str): The storage key that was looked up.
    """
    def __init__(self, key: str):
        super().__init__(f"Object not found for key: {key}")
        self.key = key


class GatewayError(ComponentError):
    """Raised when the origin transport cannot relay a request."""
    def __init__(self, message: str):
        super().__init__(component_name="Gateway", message=message)


# --- Capture Related Exceptions ---
class CaptureError(DynamicRendererError):
    """
    Describes why a single URL capture failed. Captures never raise this to
    batch callers; it is carried inside a failed CaptureResult.

    Attributes:
        url (str): The URL whose capture failed.
    """
    def __init__(self, url: str, message: str):
        full_message = f"Capture failed for '{url}': {message}"
        super().__init__(full_message)
        self.url = url
