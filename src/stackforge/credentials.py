"""Credential resolution for third-party vendors.

Vendors are walked in a fixed order so the prompt sequence is the same on
every run, whatever order modules were fetched in. Each vendor owns an
ordered list of prompts; later prompts see earlier answers of the same
vendor. A vendor may also derive its secrets from a local profile store
after its prompts ran (AWS named profiles).

Modules only ever see the credentials of the vendors they declare in
``requiredCredentials``, exported under explicit environment variable
names.

Example:
    >>> resolver = CredentialResolver(RichPromptSurface())
    >>> credentials = resolver.resolve({"aws", "github"})
    >>> credentials.selected_vendors_credentials_as_env(["github"])
    {'GITHUB_ACCESS_TOKEN': '...'}
"""

from __future__ import annotations

import configparser
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from stackforge.errors import CredentialError
from stackforge.modules.descriptor import Parameter
from stackforge.prompts.conditions import KeyEquals
from stackforge.prompts.handler import PromptHandler
from stackforge.prompts.surface import PromptSurface
from stackforge.prompts.validators import (
    validate_aws_access_key_id,
    validate_aws_secret_access_key,
)

logger = structlog.get_logger(__name__)

AVAILABLE_VENDOR_ORDER: tuple[str, ...] = ("aws", "github", "circleci")

AWS_PICK_PROFILE = "Existing AWS Profiles"
AWS_MANUAL_INPUT = "Enter my own AWS credentials"

ProfileHook = Callable[[dict[str, str]], dict[str, str]]


@dataclass(frozen=True)
class CredentialVendor:
    """A credential provider and how its secrets are gathered.

    Attributes:
        name: Vendor name as used in ``requiredCredentials``
        prompts: Ordered prompts; later prompts see earlier answers
        env_names: Secret field -> environment variable name. Only these
            fields are kept as credentials; other prompt answers are
            working state for the vendor's own prompts.
        derive: Optional hook run after the prompts; returns fields that
            overwrite the prompted values
    """

    name: str
    prompts: tuple[PromptHandler, ...]
    env_names: Mapping[str, str]
    derive: ProfileHook | None = None


@dataclass
class ProjectCredential:
    """Resolved secrets, per vendor."""

    values: dict[str, dict[str, str]] = field(default_factory=dict)
    env_names: dict[str, dict[str, str]] = field(default_factory=dict)

    def is_resolved(self, vendor: str) -> bool:
        return vendor in self.values

    def selected_vendors_credentials_as_env(self, vendors: Iterable[str]) -> dict[str, str]:
        """Export the credentials of the given vendors only.

        Args:
            vendors: Vendors a module declared as required

        Returns:
            Environment variable name -> secret, empty secrets omitted

        Raises:
            CredentialError: If any vendor was not resolved
        """
        env: dict[str, str] = {}
        for vendor in vendors:
            if not self.is_resolved(vendor):
                raise CredentialError(f"Credentials for vendor {vendor!r} were not resolved")
            names = self.env_names.get(vendor, {})
            for key, value in self.values[vendor].items():
                if value:
                    env[names.get(key, key)] = value
        return env


def read_aws_profiles(credentials_path: Path) -> list[str]:
    """List profile names in an AWS shared credentials file."""
    parser = configparser.ConfigParser()
    parser.read(credentials_path)
    return parser.sections()


def read_aws_profile_credentials(profile: str, credentials_path: Path) -> dict[str, str]:
    """Read one profile's access key pair from an AWS shared credentials file.

    Raises:
        CredentialError: If the profile or its keys are missing
    """
    parser = configparser.ConfigParser()
    parser.read(credentials_path)
    if not parser.has_section(profile):
        raise CredentialError(f"AWS profile {profile!r} not found in {credentials_path}")
    section = parser[profile]
    try:
        return {
            "accessKeyId": section["aws_access_key_id"],
            "secretAccessKey": section["aws_secret_access_key"],
        }
    except KeyError as e:
        raise CredentialError(f"AWS profile {profile!r} is missing {e.args[0]}") from e


def aws_vendor(credentials_path: Path | None = None) -> CredentialVendor:
    """AWS vendor: a profile from the shared credentials file or a manual key pair."""
    path = credentials_path or Path.home() / ".aws" / "credentials"
    profiles = read_aws_profiles(path) if path.exists() else []

    if profiles:
        choose = Parameter(
            field="use_aws_profile",
            label="Use credentials from existing AWS profiles?",
            options=(AWS_PICK_PROFILE, AWS_MANUAL_INPUT),
        )
    else:
        choose = Parameter(field="use_aws_profile", value=AWS_MANUAL_INPUT)

    prompts = (
        PromptHandler(choose),
        PromptHandler(
            Parameter(field="aws_profile", label="Select AWS Profile", options=tuple(profiles)),
            condition=KeyEquals("use_aws_profile", AWS_PICK_PROFILE),
        ),
        PromptHandler(
            Parameter(field="accessKeyId", label="AWS Access Key ID"),
            condition=KeyEquals("use_aws_profile", AWS_MANUAL_INPUT),
            validate=validate_aws_access_key_id,
        ),
        PromptHandler(
            Parameter(field="secretAccessKey", label="AWS Secret Access Key"),
            condition=KeyEquals("use_aws_profile", AWS_MANUAL_INPUT),
            validate=validate_aws_secret_access_key,
        ),
    )

    def derive(answers: dict[str, str]) -> dict[str, str]:
        if answers.get("use_aws_profile") != AWS_PICK_PROFILE:
            return {}
        return read_aws_profile_credentials(answers["aws_profile"], path)

    return CredentialVendor(
        name="aws",
        prompts=prompts,
        env_names={
            "accessKeyId": "AWS_ACCESS_KEY_ID",
            "secretAccessKey": "AWS_SECRET_ACCESS_KEY",
        },
        derive=derive,
    )


def github_vendor() -> CredentialVendor:
    return CredentialVendor(
        name="github",
        prompts=(
            PromptHandler(
                Parameter(
                    field="accessToken",
                    label="Github Personal Access Token with access to the above organization",
                    info="The token is used to create repositories and configure CI/CD",
                )
            ),
        ),
        env_names={"accessToken": "GITHUB_ACCESS_TOKEN"},
    )


def circleci_vendor() -> CredentialVendor:
    return CredentialVendor(
        name="circleci",
        prompts=(PromptHandler(Parameter(field="apiKey", label="CircleCI API Key")),),
        env_names={"apiKey": "CIRCLECI_API_KEY"},
    )


def default_vendors(aws_credentials_path: Path | None = None) -> dict[str, CredentialVendor]:
    """Built-in vendors keyed by name."""
    return {
        "aws": aws_vendor(aws_credentials_path),
        "github": github_vendor(),
        "circleci": circleci_vendor(),
    }


class CredentialResolver:
    """Gathers vendor credentials once per run."""

    def __init__(
        self,
        surface: PromptSurface,
        vendors: Mapping[str, CredentialVendor] | None = None,
        order: Sequence[str] = AVAILABLE_VENDOR_ORDER,
    ) -> None:
        self.surface = surface
        self.vendors = dict(vendors) if vendors is not None else default_vendors()
        self.order = tuple(order)
        self.logger = logger.bind(component="CredentialResolver")

    def resolve(self, required_vendors: Iterable[str]) -> ProjectCredential:
        """Prompt for every required vendor, in the fixed vendor order.

        Args:
            required_vendors: Union of all modules' required vendors

        Returns:
            ProjectCredential holding exactly the required vendors

        Raises:
            CredentialError: If a required vendor is unknown
        """
        required = set(required_vendors)
        unknown = sorted(required - set(self.order) - set(self.vendors))
        if unknown:
            raise CredentialError(f"Unsupported credential vendors: {', '.join(unknown)}")

        ordered = [v for v in self.order if v in required]
        ordered.extend(sorted(required - set(ordered)))

        credentials = ProjectCredential()
        for name in ordered:
            vendor = self.vendors.get(name)
            if vendor is None:
                raise CredentialError(f"No prompts registered for vendor {name!r}")
            credentials.values[name] = self._resolve_vendor(vendor)
            credentials.env_names[name] = dict(vendor.env_names)
            self.logger.info("vendor_credentials_resolved", vendor=name)
        return credentials

    def _resolve_vendor(self, vendor: CredentialVendor) -> dict[str, str]:
        answers: dict[str, str] = {}
        for handler in vendor.prompts:
            answers[handler.field] = handler.get_param(answers, self.surface)

        if vendor.derive is not None:
            derived = vendor.derive(answers)
            if derived:
                self.logger.info("vendor_credentials_derived_from_profile", vendor=vendor.name)
            answers.update(derived)

        return {key: answers.get(key, "") for key in vendor.env_names}
