"""
Configuration management for the deploy info service.

This module provides centralized configuration with:
- Environment variable overrides per settings group
- Type validation and defaults
- Deploy classification pattern override
- Git command timeouts
- Logging configuration
"""

import re
from typing import Optional, Dict, Any
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import BaseSettings as PydanticBaseSettings


DEFAULT_SUCCESS_PATTERN = "deploy success|deployment successful"


class DeploySettings(BaseSettings):
    """Deploy classification settings."""

    success_pattern: Optional[str] = Field(
        default=None,
        description="Regular expression marking a commit message as a successful deploy",
    )
    build_label: Optional[str] = Field(default=None, description="Explicit build label")

    model_config = {"env_prefix": "DEPLOY_", "extra": "ignore"}

    @field_validator("success_pattern")
    @classmethod
    def validate_success_pattern(cls, v):
        if v is None or not v.strip():
            return None
        try:
            re.compile(v, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Invalid deploy success pattern {v!r}: {e}")
        return v

    @field_validator("build_label")
    @classmethod
    def validate_build_label(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def effective_pattern(self) -> str:
        """Pattern in use once an empty override has been discarded."""
        return self.success_pattern or DEFAULT_SUCCESS_PATTERN


class GitSettings(BaseSettings):
    """Git command configuration settings."""

    repo_path: str = Field(default=".", description="Repository working directory")
    command_timeout: float = Field(default=5.0, description="Seconds before a git command is killed")

    model_config = {"env_prefix": "GIT_", "extra": "ignore"}

    @field_validator("command_timeout")
    @classmethod
    def validate_command_timeout(cls, v):
        if v <= 0:
            raise ValueError("Git command timeout must be positive")
        return v


class FileSettings(BaseSettings):
    """File configuration settings."""

    manifest_path: str = Field(
        default="package.json", description="Manifest file providing the version string"
    )
    default_version: str = Field(default="1.0.0", description="Version used when the manifest is unusable")

    model_config = {"env_prefix": "FILE_", "extra": "ignore"}


class MonitoringSettings(BaseSettings):
    """Logging configuration settings."""

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Logging format string",
    )

    model_config = {"env_prefix": "MONITORING_", "extra": "ignore"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class ServiceSettings(BaseSettings):
    """HTTP service configuration settings."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8010, ge=1, le=65535, description="Deploy info service port")
    reload: bool = Field(default=False, description="Enable auto reload")

    model_config = {"env_prefix": "SERVICE_", "extra": "ignore"}


class Settings(PydanticBaseSettings):
    """
    Main application settings.

    Each group reads its own environment prefix, e.g. ``DEPLOY_SUCCESS_PATTERN``,
    ``GIT_COMMAND_TIMEOUT`` or ``MONITORING_LOG_LEVEL``. Nested values can also
    be given through the ``__`` delimiter (``GIT__REPO_PATH``).
    """

    app_name: str = Field(default="deploy-info", description="Application name")
    environment: str = Field(default="development", description="Environment name")

    deploy: DeploySettings = Field(default_factory=DeploySettings)
    git: GitSettings = Field(default_factory=GitSettings)
    file: FileSettings = Field(default_factory=FileSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        valid_environments = ["development", "testing", "staging", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration object

    Example:
        >>> settings = get_settings()
        >>> print(settings.deploy.effective_pattern)
    """
    return Settings()


def export_config(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Export configuration for diagnostics.

    Returns:
        Dict[str, Any]: Configuration export
    """
    settings = settings or get_settings()
    return {
        "app_name": settings.app_name,
        "environment": settings.environment,
        "deploy": {
            "success_pattern": settings.deploy.effective_pattern,
            "pattern_overridden": settings.deploy.success_pattern is not None,
            "build_label": settings.deploy.build_label,
        },
        "git": {
            "repo_path": settings.git.repo_path,
            "command_timeout": settings.git.command_timeout,
        },
        "file": {
            "manifest_path": settings.file.manifest_path,
            "default_version": settings.file.default_version,
        },
        "monitoring": {
            "log_level": settings.monitoring.log_level,
        },
        "service": {
            "host": settings.service.host,
            "port": settings.service.port,
        },
    }


if __name__ == "__main__":
    """Configuration export script."""
    import json

    print("Configuration Export:")
    print(json.dumps(export_config(), indent=2))
