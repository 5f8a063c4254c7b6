"""Configuration parsing and validation for the environment reporter."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import AuthenticationError, ConfigurationError

DEFAULT_API_VERSION = "7.1"
DEFAULT_CORS_ORIGINS = (
    "http://localhost:8080",
    "http://localhost:8081",
    "https://localhost:8443",
)


@dataclass(frozen=True)
class AzureDevOpsConfig:
    """Connection settings for the Azure DevOps organization and project."""

    organization: str
    project: str
    pat: str
    api_version: str = DEFAULT_API_VERSION


@dataclass(frozen=True)
class BitbucketConfig:
    """Connection settings for a single Bitbucket Cloud repository."""

    workspace: str
    repository: str
    username: str
    app_password: str


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings used by the API service and CLI."""

    azure_devops: AzureDevOpsConfig
    bitbucket: Optional[BitbucketConfig] = None
    cors_origins: Tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)
    cache_size_limit: Optional[int] = None
    timeout_seconds: int = 30
    log_level: str = "INFO"


def _env(name: str) -> str:
    return os.getenv(name, "").strip()


def _optional_positive_int(name: str) -> Optional[int]:
    raw = _env(name)
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for '{name}': expected an integer.") from exc
    if value <= 0:
        raise ConfigurationError(f"Invalid value for '{name}': expected an integer greater than 0.")
    return value


def load_azure_devops_config() -> AzureDevOpsConfig:
    """Read Azure DevOps settings from ``ADO_*`` environment variables.

    Raises:
        ConfigurationError: If organization or project is missing.
        AuthenticationError: If ``ADO_PAT`` is not configured.
    """
    organization = _env("ADO_ORGANIZATION")
    project = _env("ADO_PROJECT")
    if not organization or not project:
        raise ConfigurationError(
            "Missing Azure DevOps organization/project. "
            "Set 'ADO_ORGANIZATION' and 'ADO_PROJECT' before starting the service."
        )

    pat = _env("ADO_PAT")
    if not pat:
        raise AuthenticationError(
            "Missing required Azure DevOps Personal Access Token. "
            "Set the 'ADO_PAT' environment variable before starting the service."
        )

    return AzureDevOpsConfig(
        organization=organization,
        project=project,
        pat=pat,
        api_version=_env("ADO_API_VERSION") or DEFAULT_API_VERSION,
    )


def load_bitbucket_config() -> Optional[BitbucketConfig]:
    """Read Bitbucket settings; returns ``None`` when none of them are set.

    Raises:
        ConfigurationError: If only some of the Bitbucket variables are set.
    """
    values = {
        "BITBUCKET_WORKSPACE": _env("BITBUCKET_WORKSPACE"),
        "BITBUCKET_REPOSITORY": _env("BITBUCKET_REPOSITORY"),
        "BITBUCKET_USERNAME": _env("BITBUCKET_USERNAME"),
        "BITBUCKET_APP_PASSWORD": _env("BITBUCKET_APP_PASSWORD"),
    }
    if not any(values.values()):
        return None

    missing = sorted(name for name, value in values.items() if not value)
    if missing:
        raise ConfigurationError(
            "Incomplete Bitbucket configuration; missing: " + ", ".join(missing)
        )

    return BitbucketConfig(
        workspace=values["BITBUCKET_WORKSPACE"],
        repository=values["BITBUCKET_REPOSITORY"],
        username=values["BITBUCKET_USERNAME"],
        app_password=values["BITBUCKET_APP_PASSWORD"],
    )


def load_settings() -> Settings:
    """Build and validate application settings from the process environment.

    Returns:
        A validated ``Settings`` instance.

    Raises:
        ConfigurationError: If a value is present but invalid.
        AuthenticationError: If the Azure DevOps PAT is not configured.
    """
    origins_raw = _env("CORS_ORIGINS")
    origins = (
        tuple(origin.strip() for origin in origins_raw.split(",") if origin.strip())
        if origins_raw
        else DEFAULT_CORS_ORIGINS
    )

    return Settings(
        azure_devops=load_azure_devops_config(),
        bitbucket=load_bitbucket_config(),
        cors_origins=origins,
        cache_size_limit=_optional_positive_int("CACHE_SIZE_LIMIT"),
        timeout_seconds=_optional_positive_int("HTTP_TIMEOUT_SECONDS") or 30,
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
    )
