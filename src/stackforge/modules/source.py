"""Module retrieval and loading.

A module address is either a local directory or a Git source. Git sources
look like ``github.com/acme/infra-stack``, ``https://...``, or
``git@host:org/repo.git`` and may carry a subdirectory (``//path``) and a
ref (``?ref=v1.2.0``)::

    github.com/acme/monorepo//modules/backend?ref=v0.3.0

Fetching writes the module into the configured cache directory, replacing
any earlier copy. All fetches of a stack run concurrently and are joined
at a single barrier before any descriptor is parsed.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
import shutil
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import git
import structlog
from git import GitCommandError

from stackforge.config import RegistryConfig
from stackforge.errors import FetchError, ParseError
from stackforge.modules.descriptor import ModuleConfig, load_module_descriptor

logger = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_GIT_PREFIXES = ("https://", "http://", "ssh://", "git@", "git::")


@dataclass(frozen=True)
class ModuleAddress:
    """A parsed module address.

    Attributes:
        source: The address exactly as written in the registry
        location: Repository URL or local directory
        subdir: Path of the module inside the location
        ref: Git ref to check out, if any
        is_local: True when location is a local directory
    """

    source: str
    location: str
    subdir: str = ""
    ref: str | None = None
    is_local: bool = False

    @classmethod
    def parse(cls, source: str) -> ModuleAddress:
        address, ref = source, None
        if "?ref=" in address:
            address, ref = address.split("?ref=", 1)

        if address.startswith("file://"):
            return cls(source=source, location=address[len("file://") :], is_local=True)

        if not address.startswith(_GIT_PREFIXES) and Path(address).expanduser().is_dir():
            return cls(source=source, location=str(Path(address).expanduser()), is_local=True)

        location, subdir = address, ""
        scheme_end = address.find("://")
        split_at = address.find("//", scheme_end + 3 if scheme_end >= 0 else 0)
        if split_at >= 0:
            location, subdir = address[:split_at], address[split_at + 2 :]

        if location.startswith("git::"):
            location = location[len("git::") :]
        elif not location.startswith(_GIT_PREFIXES):
            location = f"https://{location}"

        return cls(source=source, location=location, subdir=subdir.strip("/"), ref=ref)


class ModuleFetcher:
    """Fetches modules into a local working area and parses their descriptors.

    Attributes:
        config: Registry configuration (cache directory, descriptor name)
    """

    def __init__(self, config: RegistryConfig) -> None:
        self.config = config
        self.logger = logger.bind(component="ModuleFetcher")

    def local_path(self, source: str) -> Path:
        """Return the working-area directory a module address is fetched into.

        The readable slug alone is not unique (`a/b-c` and `a-b/c` collide),
        so a digest of the full address is appended.
        """
        slug = _UNSAFE_CHARS.sub("-", source).strip("-")
        digest = hashlib.sha256(source.encode("utf-8")).hexdigest()[:12]
        return self.config.modules_cache_dir / f"{slug}-{digest}"

    def fetch_module(self, source: str) -> Path:
        """Retrieve a module's content into the working area.

        Any earlier copy at the target location is replaced.

        Args:
            source: Module address

        Returns:
            Local directory holding the module content

        Raises:
            FetchError: If the content cannot be retrieved
        """
        address = ModuleAddress.parse(source)
        target = self.local_path(source)
        self.logger.info("fetching_module", source=source, target=str(target))

        try:
            if target.exists():
                shutil.rmtree(target)
            target.parent.mkdir(parents=True, exist_ok=True)

            if address.is_local:
                self._copy_local(address, target)
            else:
                self._clone(address, target)
        except FetchError:
            raise
        except (GitCommandError, OSError) as e:
            self.logger.error("module_fetch_failed", source=source, error=str(e))
            raise FetchError(source, str(e)) from e

        self.logger.debug("module_fetched", source=source)
        return target

    def _copy_local(self, address: ModuleAddress, target: Path) -> None:
        origin = Path(address.location) / address.subdir
        if not origin.is_dir():
            raise FetchError(address.source, f"directory not found: {origin}")
        shutil.copytree(origin, target, ignore=shutil.ignore_patterns(".git"))

    def _clone(self, address: ModuleAddress, target: Path) -> None:
        clone_kwargs: dict[str, object] = {"depth": 1}
        if address.ref:
            clone_kwargs["branch"] = address.ref

        with tempfile.TemporaryDirectory(prefix="stackforge-") as scratch:
            checkout = Path(scratch) / "checkout"
            git.Repo.clone_from(address.location, checkout, **clone_kwargs)
            origin = checkout / address.subdir
            if not origin.is_dir():
                raise FetchError(
                    address.source, f"subdirectory {address.subdir!r} not found in repository"
                )
            shutil.copytree(origin, target, ignore=shutil.ignore_patterns(".git"))

    def parse_module_config(self, source: str) -> ModuleConfig:
        """Parse the descriptor of an already fetched module.

        Raises:
            ParseError: If the descriptor is missing or invalid
        """
        return load_module_descriptor(self.local_path(source), source, self.config.descriptor_name)

    async def fetch_all(self, sources: Sequence[str]) -> list[Path]:
        """Fetch every module concurrently and wait for all of them.

        Every fetch runs to completion (or failure) before this returns, so
        callers never observe a half-populated working area.

        Raises:
            FetchError: The first failure in source order, after all
                fetches have finished
        """
        self.logger.info("fetching_modules", count=len(sources))
        results = await asyncio.gather(
            *(asyncio.to_thread(self.fetch_module, source) for source in sources),
            return_exceptions=True,
        )

        failures: list[tuple[str, BaseException]] = []
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                self.logger.error("module_fetch_failed", source=source, error=str(result))
                failures.append((source, result))

        if failures:
            source, first = failures[0]
            if isinstance(first, FetchError):
                raise first
            raise FetchError(source, str(first)) from first

        return [r for r in results if isinstance(r, Path)]

    async def load_all_modules(
        self, sources: Sequence[str]
    ) -> tuple[dict[str, ModuleConfig], dict[str, str]]:
        """Fetch and parse every module of a stack.

        Args:
            sources: Module addresses in stack order

        Returns:
            Tuple of (module name -> ModuleConfig, module name -> source address),
            both in stack order

        Raises:
            FetchError: If any module cannot be fetched
            ParseError: If any descriptor is invalid or two modules share a name
        """
        await self.fetch_all(sources)

        modules: dict[str, ModuleConfig] = {}
        mapped_sources: dict[str, str] = {}
        for source in sources:
            module = self.parse_module_config(source)
            if module.name in modules:
                raise ParseError(
                    source,
                    f"module name {module.name!r} already declared by {mapped_sources[module.name]}",
                )
            modules[module.name] = module
            mapped_sources[module.name] = source
            self.logger.debug("module_loaded", name=module.name, source=source)

        return modules, mapped_sources
