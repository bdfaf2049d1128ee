"""GitHub repository provisioning.

Creates a private repository per module through the GitHub GraphQL API
and pushes the generated module directory as its first commit.

Failures are per module: a module whose repository cannot be created or
pushed is reported and the remaining modules are still provisioned. The
initial commit sequence stops at the first failing git step and leaves
the effects of earlier steps in place.

Example usage:
    >>> async with GithubClient(token, GithubConfig()) as client:
    ...     provisioner = RepositoryProvisioner(client, GithubConfig())
    ...     report = await provisioner.provision(project, project_dir)
    >>> report.failed
    {}
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import git
import httpx
import structlog
from git import GitCommandError

from stackforge.config import GithubConfig
from stackforge.errors import ProvisioningError
from stackforge.project.config import ProjectConfig

logger = structlog.get_logger(__name__)

CREATE_PERSONAL_REPOSITORY_MUTATION = """
mutation ($repoName: String!, $repoDescription: String!) {
  createRepository(
    input: {name: $repoName, visibility: PRIVATE, description: $repoDescription}
  ) {
    clientMutationId
  }
}
"""

CREATE_ORGANIZATION_REPOSITORY_MUTATION = """
mutation ($repoName: String!, $repoDescription: String!, $ownerId: ID!) {
  createRepository(
    input: {
      name: $repoName
      visibility: PRIVATE
      description: $repoDescription
      ownerId: $ownerId
    }
  ) {
    clientMutationId
  }
}
"""

GET_ORGANIZATION_QUERY = """
query ($ownerName: String!) {
  organization(login: $ownerName) {
    id
  }
}
"""

_NOT_AN_ORGANIZATION = "Could not resolve to an Organization"


def parse_repository_url(repository_url: str) -> tuple[str, str]:
    """Split ``github.com/{owner}/{repository}`` into owner and repository.

    Raises:
        ProvisioningError: If the URL does not have that shape
    """
    segments = repository_url.strip("/").split("/")
    if len(segments) != 3 or not all(segments):
        raise ProvisioningError(
            f"Invalid repository url {repository_url!r}, "
            'expected format "github.com/{ownerName}/{repositoryName}"'
        )
    return segments[1], segments[2]


class GithubClient:
    """Minimal async GitHub GraphQL client.

    Must be used as an async context manager.
    """

    def __init__(self, token: str, config: GithubConfig) -> None:
        self.token = token
        self.config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GithubClient:
        self._client = httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            headers={"Authorization": f"Bearer {self.token}"},
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL document and return the raw response body.

        Raises:
            ProvisioningError: On transport errors, non-2xx or non-JSON responses
        """
        if self._client is None:
            raise RuntimeError("GithubClient must be used as async context manager")
        try:
            response = await self._client.post(
                self.config.api_url, json={"query": query, "variables": variables}
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise ProvisioningError(f"GitHub API request failed: {e}") from e
        except ValueError as e:
            raise ProvisioningError(f"GitHub API returned invalid JSON: {e}") from e

    async def is_organization_owned(self, owner_name: str) -> tuple[bool, str | None]:
        """Return whether owner_name is an organization, and its node id.

        Raises:
            ProvisioningError: On any error other than "not an organization"
        """
        body = await self._execute(GET_ORGANIZATION_QUERY, {"ownerName": owner_name})
        errors = body.get("errors") or []
        if errors:
            if any(_NOT_AN_ORGANIZATION in e.get("message", "") for e in errors):
                return False, None
            raise ProvisioningError("; ".join(e.get("message", str(e)) for e in errors))
        organization = (body.get("data") or {}).get("organization") or {}
        return True, organization.get("id")

    async def create_repository(
        self,
        owner_login: str,
        repo_name: str,
        description: str,
        is_organization: bool,
        org_id: str | None = None,
    ) -> None:
        """Create a private repository for a user or an organization.

        Raises:
            ProvisioningError: If creation fails
        """
        logger.info("creating_repository", owner=owner_login, repository=repo_name)
        variables: dict[str, Any] = {"repoName": repo_name, "repoDescription": description}
        if is_organization:
            if not org_id:
                raise ProvisioningError(f"Missing organization id for {owner_login}")
            variables["ownerId"] = org_id
            query = CREATE_ORGANIZATION_REPOSITORY_MUTATION
        else:
            query = CREATE_PERSONAL_REPOSITORY_MUTATION

        body = await self._execute(query, variables)
        errors = body.get("errors") or []
        if errors:
            raise ProvisioningError(
                f"Creating {owner_login}/{repo_name} failed: "
                + "; ".join(e.get("message", str(e)) for e in errors)
            )
        logger.info("repository_created", owner=owner_login, repository=repo_name)


def initial_commit_and_push(
    owner_login: str,
    repo_name: str,
    local_path: Path,
    config: GithubConfig,
    remote_url: str | None = None,
) -> None:
    """Run init, add, commit, remote add and push in a module directory.

    Stops at the first failing step; earlier steps are not rolled back.

    Args:
        owner_login: Repository owner
        repo_name: Repository name
        local_path: Generated module directory
        config: GitHub configuration (branch, commit message)
        remote_url: Remote to push to; defaults to the GitHub SSH URL

    Raises:
        ProvisioningError: Naming the step that failed
    """
    origin = remote_url or f"git@github.com:{owner_login}/{repo_name}.git"
    branch = config.default_branch
    state: dict[str, git.Repo] = {}

    def init() -> None:
        state["repo"] = git.Repo.init(local_path, initial_branch=branch)

    steps: list[tuple[str, Callable[[], Any]]] = [
        ("git init", init),
        ("git add .", lambda: state["repo"].git.add(".")),
        (
            f'git commit -m "{config.commit_message}"',
            lambda: state["repo"].git.commit("-m", config.commit_message),
        ),
        (
            f"git remote add origin {origin}",
            lambda: state["repo"].create_remote("origin", origin),
        ),
        (
            f"git push -u origin {branch}",
            lambda: state["repo"].git.push("-u", "origin", branch),
        ),
    ]

    for description, step in steps:
        logger.info("git_step", repository=repo_name, step=description)
        try:
            step()
        except (GitCommandError, OSError) as e:
            logger.error("git_step_failed", repository=repo_name, step=description, error=str(e))
            raise ProvisioningError(f"Failed to run {description}: {e}") from e

    logger.info("repository_initialized", repository=repo_name, remote=origin)


@dataclass
class ProvisioningReport:
    """Per-module outcome of repository provisioning."""

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class RepositoryProvisioner:
    """Creates and pushes one repository per project module."""

    def __init__(
        self,
        client: GithubClient,
        config: GithubConfig,
        remote_url_for: Callable[[str, str], str] | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.remote_url_for = remote_url_for
        self.logger = logger.bind(component="RepositoryProvisioner")

    async def provision_module(self, repository_url: str, local_path: Path) -> None:
        """Create the repository and push the module directory.

        Raises:
            ProvisioningError: If any part fails
        """
        owner, repo_name = parse_repository_url(repository_url)
        is_org, org_id = await self.client.is_organization_owned(owner)
        await self.client.create_repository(
            owner, repo_name, f"Repository for {repo_name}", is_org, org_id
        )
        remote = self.remote_url_for(owner, repo_name) if self.remote_url_for else None
        await asyncio.to_thread(
            initial_commit_and_push, owner, repo_name, local_path, self.config, remote
        )

    async def provision(self, project: ProjectConfig, project_dir: Path) -> ProvisioningReport:
        """Provision every module; a failure does not stop the others."""
        report = ProvisioningReport()
        for module_name, module in project.modules.items():
            try:
                await self.provision_module(
                    module.repository_url, project_dir / module.repository_name
                )
            except ProvisioningError as e:
                self.logger.error("module_provisioning_failed", module=module_name, error=str(e))
                report.failed[module_name] = str(e)
            else:
                report.succeeded.append(module_name)
        return report
