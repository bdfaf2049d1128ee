"""Integration tests for the stackforge command line."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from stackforge.main import app
from stackforge.project.config import ProjectConfig, ResolvedModule

runner = CliRunner()


def flat_output(result) -> str:
    """Command output with line wrapping undone."""
    return " ".join(result.output.split())


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep user config files and tokens out of the CLI under test."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("GITHUB_ACCESS_TOKEN", raising=False)
    yield
    # The CLI runner closes the stream the log handler was bound to
    logging.getLogger().handlers.clear()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    registry_file = tmp_path / "registry.yml"
    registry_file.write_text(
        yaml.safe_dump(
            {
                "stacks": [
                    {"label": "Small", "modules": ["github.com/acme/infra"]},
                    {
                        "label": "Full",
                        "modules": ["github.com/acme/infra", "github.com/acme/api"],
                    },
                ]
            }
        )
    )
    path = tmp_path / "stackforge.toml"
    path.write_text(
        "[registry]\n"
        f'modules_cache_dir = "{tmp_path / "cache"}"\n'
        f'registry_file = "{registry_file}"\n'
        "\n"
        "[apply]\n"
        'command = "printf applied > applied.txt"\n'
    )
    return path


@pytest.fixture
def project_dir(make_module, tmp_path: Path) -> Path:
    """A project directory as written by init, with local module sources."""
    infra = make_module("infra", templates={"Makefile": "apply:\n\techo {{ params.region }}\n"})
    api = make_module(
        "api",
        {"dependsOn": ["infra"]},
        templates={"README.md": "# {{ module.repositoryName }}\n"},
    )
    project = ProjectConfig(
        name="acme",
        parameters={"GithubRootOrg": ""},
        modules={
            "infra": ResolvedModule(
                repository_name="acme-infra",
                source=str(infra),
                parameters={"region": "us-east-1"},
            ),
            "api": ResolvedModule(
                repository_name="acme-api",
                source=str(api),
                depends_on=("infra",),
            ),
        },
    )
    path = tmp_path / "projects" / "acme"
    path.mkdir(parents=True)
    project.write(path / "stackforge-project.yml")
    return path


class TestGlobalOptions:
    def test_invalid_config_file(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.toml"
        bad.write_text("[registry\n")

        result = runner.invoke(app, ["--config", str(bad), "stack", "list"])

        assert result.exit_code == 1
        assert "Error loading configuration" in result.output

    def test_verbose(self, config_file: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_file), "--verbose", "stack", "list"])

        assert result.exit_code == 0
        assert "Debug logging enabled" in result.output


class TestStackCommands:
    """Test stack listing and inspection."""

    def test_list_builtin_stacks(self) -> None:
        result = runner.invoke(app, ["stack", "list"])

        assert result.exit_code == 0
        assert "EKS + Go + React + Gatsby" in result.output
        assert "EKS + NodeJS + React + Gatsby" in result.output

    def test_list_registry_file(self, config_file: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_file), "stack", "list"])

        assert result.exit_code == 0
        assert "Small" in result.output
        assert "Full" in result.output
        assert "EKS" not in result.output

    def test_show(self, config_file: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_file), "stack", "show", "Full"])

        assert result.exit_code == 0
        assert "1. github.com/acme/infra" in result.output
        assert "2. github.com/acme/api" in result.output

    def test_show_unknown_label(self, config_file: Path) -> None:
        result = runner.invoke(app, ["--config", str(config_file), "stack", "show", "Nope"])

        assert result.exit_code == 1
        assert "Unknown stack" in result.output


class TestProjectCommands:
    """Test create and apply against a project file on disk."""

    def test_create_without_push(self, config_file: Path, project_dir: Path) -> None:
        result = runner.invoke(
            app, ["--config", str(config_file), "project", "create", str(project_dir)]
        )

        assert result.exit_code == 0, result.output
        assert "Project acme created in" in flat_output(result)
        makefile = project_dir / "acme-infra" / "Makefile"
        assert makefile.read_text() == "apply:\n\techo us-east-1\n"
        assert (project_dir / "acme-api" / "README.md").read_text() == "# acme-api\n"
        assert (project_dir / "README.md").exists()

    def test_create_requires_token_when_pushing(
        self, config_file: Path, project_dir: Path
    ) -> None:
        project_file = project_dir / "stackforge-project.yml"
        project = ProjectConfig.read(project_file)
        project.model_copy(update={"should_push_repositories": True}).write(project_file)

        result = runner.invoke(
            app, ["--config", str(config_file), "project", "create", str(project_dir)]
        )

        assert result.exit_code == 1
        assert "GitHub token is required" in flat_output(result)
        assert not (project_dir / "acme-infra").exists()

    def test_create_missing_project_file(self, config_file: Path, tmp_path: Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()

        result = runner.invoke(app, ["--config", str(config_file), "project", "create", str(empty)])

        assert result.exit_code == 1
        assert "Error reading project" in result.output

    def test_apply(self, config_file: Path, project_dir: Path) -> None:
        runner.invoke(app, ["--config", str(config_file), "project", "create", str(project_dir)])

        result = runner.invoke(
            app, ["--config", str(config_file), "project", "apply", str(project_dir)]
        )

        assert result.exit_code == 0, result.output
        assert result.output.index("Applied infra") < result.output.index("Applied api")
        assert (project_dir / "acme-infra" / "applied.txt").read_text() == "applied"
        assert (project_dir / "acme-api" / "applied.txt").read_text() == "applied"

    def test_apply_before_create(self, config_file: Path, project_dir: Path) -> None:
        result = runner.invoke(
            app, ["--config", str(config_file), "project", "apply", str(project_dir)]
        )

        assert result.exit_code == 1
        assert "run create first" in flat_output(result)
