"""Version control provisioning."""

from __future__ import annotations

__all__ = [
    "GithubClient",
    "ProvisioningReport",
    "RepositoryProvisioner",
    "initial_commit_and_push",
    "parse_repository_url",
]

from stackforge.vcs.github import (
    GithubClient,
    ProvisioningReport,
    RepositoryProvisioner,
    initial_commit_and_push,
    parse_repository_url,
)
