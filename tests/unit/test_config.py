"""Unit tests for configuration management.

Tests cover:
- Default configuration values
- TOML file loading
- Environment variable overrides
- Validation errors for invalid configurations
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from stackforge.config import (
    ApplyConfig,
    GenerateConfig,
    GithubConfig,
    LoggingConfig,
    RegistryConfig,
    StackforgeConfig,
    load_config,
)


class TestLoggingConfig:
    """Test LoggingConfig defaults and validation."""

    def test_default_values(self) -> None:
        """Test that default logging configuration values are correct."""
        config = LoggingConfig()
        assert config.level == "WARNING"
        assert config.format == "console"
        assert config.file is None
        assert config.rotation_size_mb == 10
        assert config.retention_count == 5

    def test_level_is_normalized(self) -> None:
        """Test that log levels are upper-cased."""
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_level_validation(self) -> None:
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError, match="Invalid log level"):
            LoggingConfig(level="VERBOSE")

    def test_format_validation(self) -> None:
        """Test that unknown log formats are rejected."""
        assert LoggingConfig(format="JSON").format == "json"
        with pytest.raises(ValidationError, match="Invalid log format"):
            LoggingConfig(format="xml")


class TestRegistryConfig:
    """Test RegistryConfig defaults."""

    def test_default_values(self) -> None:
        """Test that modules are cached below the user cache directory."""
        config = RegistryConfig()
        assert config.modules_cache_dir == Path.home() / ".cache" / "stackforge" / "modules"
        assert config.local_module_path is None
        assert config.registry_file is None
        assert config.descriptor_name == "stackforge-module.yml"


class TestGithubConfig:
    """Test GithubConfig defaults and validation."""

    def test_default_values(self) -> None:
        """Test the GraphQL endpoint and initial commit defaults."""
        config = GithubConfig()
        assert config.api_url == "https://api.github.com/graphql"
        assert config.timeout_seconds == 30
        assert config.default_branch == "main"
        assert config.commit_message == "initial commit by stackforge"

    def test_timeout_validation(self) -> None:
        """Test that timeout_seconds is validated within range."""
        with pytest.raises(ValidationError):
            GithubConfig(timeout_seconds=0)
        with pytest.raises(ValidationError):
            GithubConfig(timeout_seconds=301)


class TestSectionDefaults:
    """Test the smaller configuration sections."""

    def test_generate_defaults(self) -> None:
        config = GenerateConfig()
        assert config.project_file_name == "stackforge-project.yml"
        assert config.templates_dir_name == "templates"

    def test_apply_defaults(self) -> None:
        assert ApplyConfig().command == "make"

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            GenerateConfig(unknown_option=True)


class TestStackforgeConfig:
    """Test the aggregate configuration."""

    def test_default_sections(self) -> None:
        """Test that every section is populated with defaults."""
        config = StackforgeConfig()
        assert isinstance(config.logging, LoggingConfig)
        assert isinstance(config.registry, RegistryConfig)
        assert isinstance(config.github, GithubConfig)
        assert isinstance(config.generate, GenerateConfig)
        assert isinstance(config.apply, ApplyConfig)


class TestLoadConfig:
    """Test configuration loading from files and environment."""

    def test_explicit_missing_file(self) -> None:
        """Test that an explicit missing path raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(Path("/nonexistent/stackforge.toml"))

    def test_load_from_file(self, tmp_path: Path) -> None:
        """Test that TOML values are applied."""
        config_file = tmp_path / "stackforge.toml"
        config_file.write_text(
            """
[logging]
level = "info"
format = "json"

[registry]
modules_cache_dir = "/tmp/stackforge-cache"

[github]
default_branch = "trunk"

[apply]
command = "make apply"
"""
        )

        config = load_config(config_file)
        assert config.logging.level == "INFO"
        assert config.logging.format == "json"
        assert config.registry.modules_cache_dir == Path("/tmp/stackforge-cache")
        assert config.github.default_branch == "trunk"
        assert config.apply.command == "make apply"

    def test_invalid_file_names_path(self, tmp_path: Path) -> None:
        """Test that invalid values raise ValueError naming the file."""
        config_file = tmp_path / "bad.toml"
        config_file.write_text(
            """
[github]
timeout_seconds = 0
"""
        )

        with pytest.raises(ValueError, match="bad.toml"):
            load_config(config_file)

    def test_searches_current_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that load_config picks up ./stackforge.toml."""
        (tmp_path / "stackforge.toml").write_text(
            """
[generate]
project_file_name = "project.yml"
"""
        )
        monkeypatch.chdir(tmp_path)

        config = load_config()
        assert config.generate.project_file_name == "project.yml"

    def test_environment_variables_without_toml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that environment variables work without a TOML file."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("STACKFORGE_LOGGING__LEVEL", "DEBUG")
        monkeypatch.setenv("STACKFORGE_APPLY__COMMAND", "make plan")

        config = load_config()
        assert config.logging.level == "DEBUG"
        assert config.apply.command == "make plan"
