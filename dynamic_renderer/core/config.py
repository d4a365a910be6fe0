"""
Configuration management for the Dynamic Renderer.

Settings are read from YAML files by `ConfigurationManager` and then frozen
into an immutable `RenderSettings` value. Components receive that value in
their constructors; there is no process-wide configuration object.

Key Features:
- Loads settings from YAML files based on the APP_ENV environment variable.
- Defaults to 'development' environment if APP_ENV is not set.
- Supports dot notation for accessing nested keys (e.g., "storage.bucket").
- Secrets can be supplied through environment variables instead of YAML.
"""
import os
import yaml
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dynamic_renderer.core.exceptions import ConfigurationError

# CONFIG_DIR: Directory holding the environment YAML files (development.yaml, production.yaml).
CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "config")

DEFAULT_ENV = "development"

# Environment variable that overrides storage.api_key so keys stay out of YAML files.
STORAGE_API_KEY_ENV = "DYNAMIC_RENDERER_STORAGE_API_KEY"

DEFAULT_BOT_USER_AGENTS: Tuple[str, ...] = (
    # Search engine bots
    "googlebot",
    "bingbot",
    "slurp",
    "duckduckbot",
    "baiduspider",
    "yandexbot",
    "sogou",
    "exabot",
    "facebot",
    # Social media and other bots
    "twitterbot",
    "linkedinbot",
    "pinterestbot",
    "telegram",
    "applebot",
    "semrushbot",
    "mj12bot",
    "dotbot",
    "ahrefsbot",
    "rogerbot",
    "mediapartners-google",
    "adsbot-google",
)

DEFAULT_MEDIA_EXTENSIONS: Tuple[str, ...] = (
    ".jpg", ".jpeg", ".png", ".gif", ".bmp",
    ".svg", ".webp", ".ico", ".tiff", ".tif",
    ".mp4", ".mp3", ".wav", ".avi", ".mov",
    ".mkv", ".flv", ".wmv", ".css", ".xml",
    ".json",
)


class ConfigError(Exception):
    """Base class for all configuration file errors."""
    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when a specific configuration file (e.g., development.yaml) cannot be found."""
    pass


class InvalidYamlError(ConfigError):
    """Raised when a configuration file contains invalid YAML syntax or is not a dictionary."""
    pass


class ConfigurationManager:
    """
    Loads a YAML configuration file and gives dot-notation access to its values.

    Each instance owns its own configuration dictionary; create one per process
    entry point and turn it into `RenderSettings` with `to_settings()`.
    """

    def __init__(self, env: Optional[str] = None, config_dir: Optional[str] = None):
        """
        Args:
            env (Optional[str]): Environment name to load. Falls back to APP_ENV, then DEFAULT_ENV.
            config_dir (Optional[str]): Directory containing `{env}.yaml`. Defaults to CONFIG_DIR.

        Raises:
            ConfigFileNotFoundError: If the YAML file for the target environment is not found.
            InvalidYamlError: If the YAML file is malformed or not a dictionary.
        """
        self._config: Dict[str, Any] = {}
        self._current_env = ""
        self.config_dir = config_dir or CONFIG_DIR
        self.load_config(env)

    def load_config(self, env: Optional[str] = None) -> None:
        """
        Loads configuration from a YAML file corresponding to the specified environment.

        The environment is determined in the following order of precedence:
        1. The `env` parameter passed to this method.
        2. The `APP_ENV` environment variable.
        3. `DEFAULT_ENV`.

        Raises:
            ConfigFileNotFoundError: If the YAML file for the target environment is not found.
            InvalidYamlError: If the YAML file is malformed or not a dictionary.
        """
        self._current_env = env or os.getenv("APP_ENV", DEFAULT_ENV)
        config_file_path = os.path.join(self.config_dir, f"{self._current_env}.yaml")

        try:
            with open(config_file_path, "r") as f:
                loaded = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigFileNotFoundError(
                f"Configuration file not found for environment '{self._current_env}' at '{config_file_path}'. "
                f"Ensure '{self._current_env}.yaml' exists in the '{self.config_dir}' directory."
            )
        except yaml.YAMLError as e:
            raise InvalidYamlError(
                f"Error parsing YAML in configuration file '{config_file_path}': {e}"
            )
        if not isinstance(loaded, dict):
            raise InvalidYamlError(
                f"Configuration file '{config_file_path}' does not contain a valid YAML dictionary."
            )
        self._config = loaded

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Retrieves a configuration value for the given key.

        Supports nested values using dot notation (e.g., "gateway.cache_ttl").
        Returns `default` if any part of the path is missing.
        """
        value = self._config
        try:
            for k_part in key.split("."):
                if isinstance(value, dict):
                    value = value[k_part]
                else:
                    return default
            return value
        except (KeyError, TypeError):
            return default

    def section(self, key: str) -> Dict[str, Any]:
        """Returns a nested section as a dict, or an empty dict when absent or not a mapping."""
        value = self.get(key, {})
        return value if isinstance(value, dict) else {}

    @property
    def current_environment(self) -> str:
        """Name of the loaded environment (e.g., "development", "production")."""
        return self._current_env

    def to_settings(self) -> "RenderSettings":
        """
        Builds the immutable `RenderSettings` from the loaded configuration.

        Raises:
            ConfigurationError: If any value fails validation.
        """
        raw = {
            name: self.section(name)
            for name in ("origin", "site", "storage", "gateway", "classifier",
                         "sanitizer", "renderer", "capture", "logging")
        }
        api_key = os.getenv(STORAGE_API_KEY_ENV)
        if api_key:
            raw["storage"] = {**raw["storage"], "api_key": api_key}
        try:
            return RenderSettings(environment=self._current_env, **raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for environment '{self._current_env}': {e}")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class OriginSettings(_Frozen):
    base_url: str = "http://localhost:3000"

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class SiteSettings(_Frozen):
    # Hostname used for cache keys at serve time. Empty means "use the request host".
    domain_name: str = ""


class StorageSettings(_Frozen):
    backend: str = "http"
    endpoint: str = ""
    bucket: str = "rendered-pages"
    api_key: str = ""
    base_path: str = "rendered_pages"
    request_timeout: float = 10.0

    @field_validator("backend")
    @classmethod
    def _known_backend(cls, v: str) -> str:
        if v not in ("http", "file"):
            raise ValueError(f"Unsupported storage backend: {v}. Must be 'http' or 'file'.")
        return v


class GatewaySettings(_Frozen):
    cache_ttl: int = Field(default=3600, ge=0)
    lookup_timeout: float = Field(default=3.0, gt=0)
    proxy_timeout: float = Field(default=30.0, gt=0)
    local_hosts: Tuple[str, ...] = ("localhost", "127.0.0.1")
    cached_marker_header: str = "X-Cached-Version"


class ClassifierSettings(_Frozen):
    bot_user_agents: Tuple[str, ...] = DEFAULT_BOT_USER_AGENTS
    media_extensions: Tuple[str, ...] = DEFAULT_MEDIA_EXTENSIONS


class SanitizerSettings(_Frozen):
    remove_scripts: bool = True
    inject_base_url: bool = True


class RendererSettings(_Frozen):
    browser_type: str = "chromium"
    headless: bool = True
    navigation_timeout: int = Field(default=45000, gt=0)  # milliseconds
    launch_timeout: int = Field(default=30000, gt=0)
    block_resources: bool = True
    # Masks navigator.webdriver and similar headless tells on every page.
    stealth: bool = True
    blocked_resource_types: Tuple[str, ...] = ("image", "stylesheet", "font")
    launch_args: Tuple[str, ...] = (
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-gpu",
        "--disable-dev-shm-usage",
    )


class CaptureSettings(_Frozen):
    max_concurrency: int = Field(default=4, ge=1)


class RenderSettings(_Frozen):
    """Immutable configuration value handed to every component at construction."""
    environment: str = DEFAULT_ENV
    origin: OriginSettings = OriginSettings()
    site: SiteSettings = SiteSettings()
    storage: StorageSettings = StorageSettings()
    gateway: GatewaySettings = GatewaySettings()
    classifier: ClassifierSettings = ClassifierSettings()
    sanitizer: SanitizerSettings = SanitizerSettings()
    renderer: RendererSettings = RendererSettings()
    capture: CaptureSettings = CaptureSettings()
    # Passed through to setup_logging() as-is.
    logging: Dict[str, Any] = Field(default_factory=dict)


def load_settings(env: Optional[str] = None, config_dir: Optional[str] = None) -> RenderSettings:
    """
    Convenience wrapper: load `{env}.yaml` and return the frozen settings.

    Args:
        env (Optional[str]): Environment name (falls back to APP_ENV / DEFAULT_ENV).
        config_dir (Optional[str]): Alternative configuration directory.

    Returns:
        RenderSettings: The validated, immutable settings.
    """
    return ConfigurationManager(env=env, config_dir=config_dir).to_settings()
