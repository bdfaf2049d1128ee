"""Input validators.

A validator is a pure function of the raw input string. It returns None
when the input is acceptable and raises ValueError with a user-facing
message otherwise.

Which validator applies to which module field is not global state: it is
an explicit ValidatorSet handed to the parameter resolver, so separate
runs (and tests) can use different sets.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

Validator = Callable[[str], None]

_AWS_ACCESS_KEY_ID = re.compile(r"^[A-Z0-9]{20}$")
_AWS_SECRET_ACCESS_KEY = re.compile(r"^[A-Za-z0-9/+=]{40}$")
_PROJECT_NAME = re.compile(r"^[A-Za-z0-9-]{1,15}$")
# Accepts multi-label suffixes such as a.co.uk as well
_ROOT_DOMAIN = re.compile(r"^([a-z0-9]+(-[a-z0-9]+)*\.)+[a-z]{2,}$")
_SUBDOMAIN = re.compile(r"^([a-z0-9]+(-[a-z0-9]+)*\.)$")


def validate_aws_access_key_id(value: str) -> None:
    """20 uppercase alphanumeric characters."""
    if not _AWS_ACCESS_KEY_ID.match(value):
        raise ValueError("Invalid aws_access_key_id")


def validate_aws_secret_access_key(value: str) -> None:
    """40 base64 characters."""
    if not _AWS_SECRET_ACCESS_KEY.match(value):
        raise ValueError("Invalid aws_secret_access_key")


def validate_project_name(value: str) -> None:
    if not _PROJECT_NAME.match(value):
        raise ValueError(
            "Invalid project-name (cannot contain special chars except '-' & max len of 15)"
        )


def validate_root_domain(value: str) -> None:
    if not _ROOT_DOMAIN.match(value):
        raise ValueError("Invalid root domain name")


def validate_subdomain(value: str) -> None:
    if not _SUBDOMAIN.match(value):
        raise ValueError("Invalid subdomain (cannot contain special chars & must end with a '.')")


def specific_value_validation(*values: str) -> Validator:
    """Build a validator accepting only the given literal values."""

    def validate(value: str) -> None:
        if value not in values:
            raise ValueError(f"Please choose one of {'/'.join(values)}")

    return validate


@dataclass(frozen=True)
class ValidatorSet:
    """Explicit mapping of module parameter fields to validators."""

    validators: Mapping[str, Validator] = field(default_factory=dict)

    def for_field(self, field_name: str) -> Validator | None:
        return self.validators.get(field_name)


def default_validators() -> ValidatorSet:
    """Validators bound to the field names used by the built-in stacks."""
    return ValidatorSet(
        {
            "projectName": validate_project_name,
            "productionHostRoot": validate_root_domain,
            "stagingHostRoot": validate_root_domain,
            "productionFrontendSubdomain": validate_subdomain,
            "productionBackendSubdomain": validate_subdomain,
            "stagingFrontendSubdomain": validate_subdomain,
            "stagingBackendSubdomain": validate_subdomain,
        }
    )
