from .config import (
    ConfigurationManager,
    ConfigError,
    ConfigFileNotFoundError,
    InvalidYamlError,
    RenderSettings,
    load_settings,
)
from .exceptions import (
    DynamicRendererError,
    ConfigurationError,
    ComponentError,
    RendererError,
    StorageError,
    StorageNotFoundError,
    GatewayError,
    CaptureError,
)
from .logger import setup_logging, get_logger
from .keys import derive_site_id, derive_cache_key, cache_key_for, cache_key_for_url

# CaptureManager lives in core.manager; it is not re-exported here because it
# imports the components package, which itself depends on core.

__all__ = [
    # Config
    "ConfigurationManager",
    "ConfigError",
    "ConfigFileNotFoundError",
    "InvalidYamlError",
    "RenderSettings",
    "load_settings",
    # Logger
    "setup_logging",
    "get_logger",
    # Keys
    "derive_site_id",
    "derive_cache_key",
    "cache_key_for",
    "cache_key_for_url",
    # Exceptions
    "DynamicRendererError",
    "ConfigurationError",
    "ComponentError",
    "RendererError",
    "StorageError",
    "StorageNotFoundError",
    "GatewayError",
    "CaptureError",
]
