"""Tests for environment-driven configuration."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from envreport.config import DEFAULT_CORS_ORIGINS, load_bitbucket_config, load_settings
from envreport.errors import AuthenticationError, ConfigurationError

_ALL_VARS = [
    "ADO_ORGANIZATION",
    "ADO_PROJECT",
    "ADO_PAT",
    "ADO_API_VERSION",
    "BITBUCKET_WORKSPACE",
    "BITBUCKET_REPOSITORY",
    "BITBUCKET_USERNAME",
    "BITBUCKET_APP_PASSWORD",
    "CORS_ORIGINS",
    "CACHE_SIZE_LIMIT",
    "HTTP_TIMEOUT_SECONDS",
    "LOG_LEVEL",
]


@pytest.fixture
def ado_env(monkeypatch):
    for name in _ALL_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ADO_ORGANIZATION", "org")
    monkeypatch.setenv("ADO_PROJECT", "proj")
    monkeypatch.setenv("ADO_PAT", "secret")
    return monkeypatch


def test_load_settings_defaults(ado_env):
    """Verify minimal Azure DevOps settings produce documented defaults."""
    settings = load_settings()

    assert settings.azure_devops.organization == "org"
    assert settings.azure_devops.api_version == "7.1"
    assert settings.bitbucket is None
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS
    assert settings.cache_size_limit is None
    assert settings.timeout_seconds == 30
    assert settings.log_level == "INFO"


def test_load_settings_reads_optional_values(ado_env):
    """Verify optional values override the defaults."""
    ado_env.setenv("ADO_API_VERSION", "7.0")
    ado_env.setenv("CORS_ORIGINS", "https://a.example.com, https://b.example.com,")
    ado_env.setenv("CACHE_SIZE_LIMIT", "500")
    ado_env.setenv("HTTP_TIMEOUT_SECONDS", "5")
    ado_env.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.azure_devops.api_version == "7.0"
    assert settings.cors_origins == ("https://a.example.com", "https://b.example.com")
    assert settings.cache_size_limit == 500
    assert settings.timeout_seconds == 5
    assert settings.log_level == "DEBUG"


def test_missing_pat_raises_authentication_error(ado_env):
    """Verify a missing PAT is reported as an authentication problem."""
    ado_env.delenv("ADO_PAT")

    with pytest.raises(AuthenticationError):
        load_settings()


def test_missing_organization_raises_configuration_error(ado_env):
    """Verify organization and project are required."""
    ado_env.delenv("ADO_ORGANIZATION")

    with pytest.raises(ConfigurationError):
        load_settings()


@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_invalid_cache_size_limit_is_rejected(ado_env, value):
    """Verify non-positive or non-numeric limits fail fast."""
    ado_env.setenv("CACHE_SIZE_LIMIT", value)

    with pytest.raises(ConfigurationError):
        load_settings()


def test_bitbucket_config_complete(ado_env):
    """Verify a complete Bitbucket group yields a config."""
    ado_env.setenv("BITBUCKET_WORKSPACE", "ws")
    ado_env.setenv("BITBUCKET_REPOSITORY", "repo")
    ado_env.setenv("BITBUCKET_USERNAME", "bot")
    ado_env.setenv("BITBUCKET_APP_PASSWORD", "pw")

    config = load_bitbucket_config()

    assert config is not None
    assert config.workspace == "ws"
    assert config.app_password == "pw"


def test_bitbucket_config_partial_is_rejected(ado_env):
    """Verify a partially configured Bitbucket group is an error."""
    ado_env.setenv("BITBUCKET_WORKSPACE", "ws")

    with pytest.raises(ConfigurationError) as excinfo:
        load_bitbucket_config()

    assert "BITBUCKET_APP_PASSWORD" in str(excinfo.value)
