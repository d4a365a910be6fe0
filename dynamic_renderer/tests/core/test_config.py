import os

import pytest
import yaml
from pydantic import ValidationError

from dynamic_renderer.core.config import (
    CONFIG_DIR,
    DEFAULT_BOT_USER_AGENTS,
    STORAGE_API_KEY_ENV,
    ConfigFileNotFoundError,
    ConfigurationManager,
    InvalidYamlError,
    RenderSettings,
    load_settings,
)
from dynamic_renderer.core.exceptions import ConfigurationError


@pytest.fixture
def temp_config_dir(tmp_path):
    """Writes development/production/broken YAML files into a temporary config directory."""
    dev_config_content = {
        "origin": {"base_url": "http://localhost:3000/"},
        "storage": {"backend": "file", "base_path": "dev_pages"},
        "gateway": {"cache_ttl": 60, "local_hosts": ["localhost"]},
        "classifier": {"bot_user_agents": ["googlebot", "bingbot"]},
    }
    prod_config_content = {
        "origin": {"base_url": "https://www.example.com"},
        "site": {"domain_name": "www.example.com"},
        "storage": {"backend": "http", "endpoint": "https://store.example.com", "bucket": "pages"},
    }
    with open(tmp_path / "development.yaml", "w") as f:
        yaml.dump(dev_config_content, f)
    with open(tmp_path / "production.yaml", "w") as f:
        yaml.dump(prod_config_content, f)
    with open(tmp_path / "invalid.yaml", "w") as f:
        f.write("origin: {base_url: 'http://x'")  # Missing closing brace
    with open(tmp_path / "not_dict.yaml", "w") as f:
        yaml.dump(["list", "instead", "of", "dict"], f)
    with open(tmp_path / "bad_values.yaml", "w") as f:
        yaml.dump({"storage": {"backend": "ftp"}}, f)
    with open(tmp_path / "negative_ttl.yaml", "w") as f:
        yaml.dump({"gateway": {"cache_ttl": -1}}, f)
    return str(tmp_path)


def test_load_development_config_default(temp_config_dir, monkeypatch):
    """APP_ENV unset -> development.yaml."""
    monkeypatch.delenv("APP_ENV", raising=False)
    manager = ConfigurationManager(config_dir=temp_config_dir)

    assert manager.current_environment == "development"
    assert manager.get("storage.backend") == "file"
    assert manager.get("gateway.cache_ttl") == 60
    assert manager.get("non_existent_key") is None
    assert manager.get("non_existent_key", "default_val") == "default_val"


def test_load_production_config_env_var(temp_config_dir, monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    manager = ConfigurationManager(config_dir=temp_config_dir)

    assert manager.current_environment == "production"
    assert manager.get("site.domain_name") == "www.example.com"


def test_explicit_env_wins_over_app_env(temp_config_dir, monkeypatch):
    monkeypatch.setenv("APP_ENV", "development")
    manager = ConfigurationManager(env="production", config_dir=temp_config_dir)
    assert manager.current_environment == "production"


def test_get_non_existent_nested_value(temp_config_dir):
    manager = ConfigurationManager(env="development", config_dir=temp_config_dir)

    assert manager.get("gateway.non_existent_sub_key") is None
    assert manager.get("gateway.cache_ttl.deeper", "fallback") == "fallback"
    assert manager.section("missing") == {}


def test_config_file_not_found_error(temp_config_dir):
    with pytest.raises(ConfigFileNotFoundError) as excinfo:
        ConfigurationManager(env="staging", config_dir=temp_config_dir)
    assert "Configuration file not found for environment 'staging'" in str(excinfo.value)
    assert "staging.yaml" in str(excinfo.value)


def test_invalid_yaml_error(temp_config_dir):
    with pytest.raises(InvalidYamlError) as excinfo:
        ConfigurationManager(env="invalid", config_dir=temp_config_dir)
    assert "Error parsing YAML" in str(excinfo.value)


def test_yaml_not_dict_error(temp_config_dir):
    with pytest.raises(InvalidYamlError) as excinfo:
        ConfigurationManager(env="not_dict", config_dir=temp_config_dir)
    assert "does not contain a valid YAML dictionary" in str(excinfo.value)


def test_managers_are_independent(temp_config_dir):
    """No shared state between instances."""
    dev = ConfigurationManager(env="development", config_dir=temp_config_dir)
    prod = ConfigurationManager(env="production", config_dir=temp_config_dir)

    assert dev is not prod
    assert dev.get("storage.backend") == "file"
    assert prod.get("storage.backend") == "http"


def test_to_settings_builds_frozen_settings(temp_config_dir):
    settings = load_settings(env="development", config_dir=temp_config_dir)

    assert isinstance(settings, RenderSettings)
    assert settings.environment == "development"
    assert settings.origin.base_url == "http://localhost:3000"  # trailing slash stripped
    assert settings.gateway.cache_ttl == 60
    assert settings.gateway.local_hosts == ("localhost",)
    assert settings.classifier.bot_user_agents == ("googlebot", "bingbot")
    # Unspecified sections fall back to defaults.
    assert settings.sanitizer.remove_scripts is True
    assert settings.capture.max_concurrency == 4

    with pytest.raises(ValidationError):
        settings.gateway.cache_ttl = 10


def test_defaults_without_yaml():
    settings = RenderSettings()
    assert settings.gateway.cache_ttl == 3600
    assert settings.classifier.bot_user_agents == DEFAULT_BOT_USER_AGENTS
    assert ".json" in settings.classifier.media_extensions
    assert settings.renderer.blocked_resource_types == ("image", "stylesheet", "font")


def test_invalid_values_raise_configuration_error(temp_config_dir):
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(env="bad_values", config_dir=temp_config_dir)
    assert "Unsupported storage backend" in str(excinfo.value)

    with pytest.raises(ConfigurationError):
        load_settings(env="negative_ttl", config_dir=temp_config_dir)


def test_storage_api_key_from_environment(temp_config_dir, monkeypatch):
    monkeypatch.setenv(STORAGE_API_KEY_ENV, "secret-key")
    settings = load_settings(env="production", config_dir=temp_config_dir)
    assert settings.storage.api_key == "secret-key"
    assert settings.storage.bucket == "pages"


@pytest.mark.parametrize("env", ["development", "production"])
def test_shipped_config_files_load(env, monkeypatch):
    monkeypatch.delenv(STORAGE_API_KEY_ENV, raising=False)
    assert os.path.exists(os.path.join(CONFIG_DIR, f"{env}.yaml"))
    settings = load_settings(env=env)
    assert settings.environment == env
    assert settings.gateway.cache_ttl == 3600
