"""Configuration management for Stackforge.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Programmatic overrides (passed to StackforgeConfig constructor)
2. Environment variables (STACKFORGE_* prefix)
3. TOML configuration file
4. Default values defined in this module

Example TOML configuration:
    [registry]
    local_module_path = "/home/me/modules"

    [github]
    timeout_seconds = 60

Example environment variable override:
    STACKFORGE_LOGGING__LEVEL="DEBUG"
    STACKFORGE_REGISTRY__MODULES_CACHE_DIR="/tmp/stackforge-modules"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stderr only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKFORGE_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="WARNING")
    format: str = Field(default="console")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=10, ge=1, le=1000)
    retention_count: int = Field(default=5, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class RegistryConfig(BaseSettings):
    """Module registry and fetch configuration.

    Attributes:
        modules_cache_dir: Local working area fetched modules are written to
        local_module_path: Resolve built-in stack modules below this path
            instead of their remote Git sources
        registry_file: Optional YAML file replacing the built-in stacks
        descriptor_name: File name of the module descriptor inside a module
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKFORGE_REGISTRY__",
        extra="forbid",
    )

    modules_cache_dir: Path = Field(
        default_factory=lambda: Path.home() / ".cache" / "stackforge" / "modules"
    )
    local_module_path: Path | None = Field(default=None)
    registry_file: Path | None = Field(default=None)
    descriptor_name: str = Field(default="stackforge-module.yml")


class GithubConfig(BaseSettings):
    """GitHub repository provisioning configuration.

    Attributes:
        api_url: GitHub GraphQL endpoint
        timeout_seconds: HTTP request timeout in seconds
        default_branch: Branch the initial commit is pushed to
        commit_message: Message of the initial commit
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKFORGE_GITHUB__",
        extra="forbid",
    )

    api_url: str = Field(default="https://api.github.com/graphql")
    timeout_seconds: int = Field(default=30, ge=1, le=300)
    default_branch: str = Field(default="main")
    commit_message: str = Field(default="initial commit by stackforge")


class GenerateConfig(BaseSettings):
    """Project generation configuration.

    Attributes:
        project_file_name: Name of the persisted project configuration file
        templates_dir_name: Directory inside a module holding its templates
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKFORGE_GENERATE__",
        extra="forbid",
    )

    project_file_name: str = Field(default="stackforge-project.yml")
    templates_dir_name: str = Field(default="templates")


class ApplyConfig(BaseSettings):
    """Infrastructure apply configuration.

    Attributes:
        command: Shell command run in every module directory
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKFORGE_APPLY__",
        extra="forbid",
    )

    command: str = Field(default="make")


class StackforgeConfig(BaseSettings):
    """Root configuration for Stackforge.

    Environment variable format for nested config:
        STACKFORGE_<SECTION>__<KEY>=value
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKFORGE_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    github: GithubConfig = Field(default_factory=GithubConfig)
    generate: GenerateConfig = Field(default_factory=GenerateConfig)
    apply: ApplyConfig = Field(default_factory=ApplyConfig)


def load_config(config_path: Path | None = None) -> StackforgeConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./stackforge.toml (current directory)
    3. ~/.config/stackforge/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        StackforgeConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path: Path | None = config_path
    else:
        search_paths = [
            Path.cwd() / "stackforge.toml",
            Path.home() / ".config" / "stackforge" / "config.toml",
        ]
        selected_path = None
        for path in search_paths:
            if path.exists():
                selected_path = path
                break

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            toml_data = tomli.load(f)

    # Pydantic overlays environment variables on top of the TOML data
    try:
        return StackforgeConfig(**toml_data)
    except Exception as e:
        if selected_path:
            raise ValueError(f"Invalid configuration in {selected_path}: {e}") from e
        raise ValueError(f"Invalid configuration: {e}") from e
