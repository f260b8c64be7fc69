"""NuGet V3 package version resolution with a per-run cache."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any
from xml.etree import ElementTree

import httpx

from umbraco_audit import __version__

logger = logging.getLogger(__name__)

DEFAULT_REGISTRATION_URL = "https://api.nuget.org/v3/registration5-semver1"
DEFAULT_FLAT_CONTAINER_URL = "https://api.nuget.org/v3-flatcontainer"

# Target frameworks that can run on Umbraco 17 / .NET 10.
COMPATIBLE_TARGETS = ("net10.0", "net9.0", "netstandard2.0")

_LEADING_DIGITS_RE = re.compile(r"^\d+")


class RegistryError(Exception):
    """Raised internally for failed or malformed registry responses."""


@dataclass(frozen=True, slots=True)
class PackageMetadata:
    """Resolved registry information for one package.

    ``latest_version`` is None when the package could not be resolved.
    ``is_compatible`` is None when no target-framework information exists.
    """

    package_name: str
    latest_version: str | None
    is_compatible: bool | None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class _Leaf:
    version: str
    target_frameworks: tuple[str, ...]


class NuGetResolver:
    """Resolve latest stable versions from NuGet, caching every outcome.

    One resolver belongs to one audit run. Failed lookups are cached too and
    are never retried within the run.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        registration_url: str = DEFAULT_REGISTRATION_URL,
        flat_container_url: str = DEFAULT_FLAT_CONTAINER_URL,
        timeout_seconds: float | None = None,
        compatible_targets: Sequence[str] = COMPATIBLE_TARGETS,
    ) -> None:
        self._client = client
        self.registration_url = registration_url.rstrip("/")
        self.flat_container_url = flat_container_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.compatible_targets = tuple(target.lower() for target in compatible_targets)
        self._cache: dict[str, PackageMetadata] = {}

    def cached(self, package_name: str) -> PackageMetadata | None:
        return self._cache.get(package_name)

    async def resolve(self, package_name: str) -> PackageMetadata:
        """Resolve one package. Never raises for registry failures."""
        async with self._client_scope() as client:
            return await self._resolve_with(client, package_name)

    async def resolve_batch(self, package_names: Iterable[str]) -> dict[str, PackageMetadata]:
        """Resolve packages concurrently; each failure stays in its own record."""
        names = list(package_names)
        logger.debug("Batch resolving %d packages", len(names))
        async with self._client_scope() as client:
            results = await asyncio.gather(*(self._resolve_with(client, name) for name in names))
        return dict(zip(names, results))

    async def _resolve_with(self, client: httpx.AsyncClient, package_name: str) -> PackageMetadata:
        cached = self._cache.get(package_name)
        if cached is not None:
            logger.debug("Cache hit for package %s", package_name)
            return cached

        try:
            metadata = await self._query(client, package_name)
        except (httpx.HTTPError, RegistryError, ValueError) as exc:
            logger.debug("NuGet lookup failed for %s: %s", package_name, exc)
            metadata = PackageMetadata(
                package_name=package_name,
                latest_version=None,
                is_compatible=None,
                error=str(exc) or exc.__class__.__name__,
            )

        self._cache[package_name] = metadata
        return metadata

    async def _query(self, client: httpx.AsyncClient, package_name: str) -> PackageMetadata:
        package_id = package_name.lower()
        logger.debug("Querying NuGet for package %s", package_name)
        response = await client.get(f"{self.registration_url}/{package_id}/index.json")
        if response.status_code == 404:
            return _unresolved(package_name, "Package not found")
        _raise_for_status(response)

        index = _as_mapping(response.json(), "registration index")
        pages = _as_list(index.get("items"), "registration index items")
        if not pages:
            return _unresolved(package_name, "No versions found")

        leaf = await self._latest_stable_leaf(client, pages)
        if leaf is None:
            return _unresolved(package_name, "No stable versions found")

        target_frameworks = leaf.target_frameworks
        if not target_frameworks:
            target_frameworks = await self._nuspec_target_frameworks(
                client, package_id, leaf.version
            )

        is_compatible = self._is_compatible(target_frameworks) if target_frameworks else None
        metadata = PackageMetadata(
            package_name=package_name,
            latest_version=leaf.version,
            is_compatible=is_compatible,
        )
        logger.debug("Resolved %s", metadata)
        return metadata

    async def _latest_stable_leaf(
        self, client: httpx.AsyncClient, pages: list[Any]
    ) -> _Leaf | None:
        # Some indexes list leaves directly instead of pages of leaves.
        if any(isinstance(item, dict) and "catalogEntry" in item for item in pages):
            return _highest_stable(_leaves(pages))

        # Pages are ordered oldest first; the first page with a stable
        # version wins so older pages are never fetched.
        for page in reversed(pages):
            page_map = _as_mapping(page, "registration page")
            items = page_map.get("items")
            if items is None:
                items = await self._fetch_page_items(client, page_map)
            leaf = _highest_stable(_leaves(_as_list(items, "registration page items")))
            if leaf is not None:
                return leaf
        return None

    async def _fetch_page_items(self, client: httpx.AsyncClient, page: dict[str, Any]) -> Any:
        page_url = page.get("@id")
        if not isinstance(page_url, str) or not page_url:
            raise RegistryError("Registration page has neither items nor @id")
        logger.debug("Fetching registration page %s", page_url)
        response = await client.get(page_url)
        _raise_for_status(response)
        return _as_mapping(response.json(), "registration page").get("items")

    async def _nuspec_target_frameworks(
        self, client: httpx.AsyncClient, package_id: str, version: str
    ) -> tuple[str, ...]:
        url = f"{self.flat_container_url}/{package_id}/{version.lower()}/{package_id}.nuspec"
        logger.debug("Fetching nuspec %s", url)
        try:
            response = await client.get(url)
            if not response.is_success:
                logger.debug(
                    "No nuspec for %s %s (HTTP %d)", package_id, version, response.status_code
                )
                return ()
            return _parse_nuspec_frameworks(response.content)
        except (httpx.HTTPError, ElementTree.ParseError) as exc:
            logger.debug("Could not read nuspec for %s %s: %s", package_id, version, exc)
            return ()

    def _is_compatible(self, target_frameworks: Iterable[str]) -> bool:
        normalized = [_normalize_framework(item) for item in target_frameworks]
        return any(target in item for item in normalized for target in self.compatible_targets)

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        options: dict[str, Any] = {
            "follow_redirects": True,
            "headers": {"User-Agent": f"umbraco-audit/{__version__}"},
        }
        if self.timeout_seconds is not None:
            options["timeout"] = self.timeout_seconds
        async with httpx.AsyncClient(**options) as client:
            yield client


def is_prerelease(version: str) -> bool:
    """Return True for SemVer pre-release versions such as ``2.1.0-beta``."""
    return "-" in version.split("+", 1)[0]


def version_key(version: str) -> tuple[tuple[int, ...], int, str]:
    """Sort key comparing numeric release segments, then stable over pre-release."""
    core = version.split("+", 1)[0].strip()
    release, _, prerelease = core.partition("-")
    numbers = [_leading_int(part) for part in release.split(".")]
    while len(numbers) < 4:
        numbers.append(0)
    return (tuple(numbers), 0 if prerelease else 1, prerelease)


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 as ``left`` is older than, equal to or newer than ``right``."""
    left_key = version_key(left)
    right_key = version_key(right)
    if left_key < right_key:
        return -1
    if left_key > right_key:
        return 1
    return 0


def _highest_stable(leaves: Iterable[_Leaf]) -> _Leaf | None:
    stable = [leaf for leaf in leaves if not is_prerelease(leaf.version)]
    if not stable:
        return None
    return max(stable, key=lambda leaf: version_key(leaf.version))


def _leaves(items: list[Any]) -> list[_Leaf]:
    leaves: list[_Leaf] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        entry = item.get("catalogEntry")
        if not isinstance(entry, dict):
            continue
        version = entry.get("version")
        if not isinstance(version, str) or not version:
            continue
        leaves.append(_Leaf(version=version, target_frameworks=_dependency_group_frameworks(entry)))
    return leaves


def _dependency_group_frameworks(entry: dict[str, Any]) -> tuple[str, ...]:
    groups = entry.get("dependencyGroups")
    if not isinstance(groups, list):
        return ()
    frameworks: list[str] = []
    for group in groups:
        if isinstance(group, dict) and isinstance(group.get("targetFramework"), str):
            frameworks.append(group["targetFramework"])
    return tuple(frameworks)


def _parse_nuspec_frameworks(content: bytes) -> tuple[str, ...]:
    root = ElementTree.fromstring(content)
    frameworks: list[str] = []
    for element in root.iter():
        target = element.get("targetFramework")
        if target and target not in frameworks:
            frameworks.append(target)
    return tuple(frameworks)


def _normalize_framework(target_framework: str) -> str:
    return target_framework.strip().lower().lstrip(".")


def _leading_int(segment: str) -> int:
    match = _LEADING_DIGITS_RE.match(segment.strip())
    return int(match.group(0)) if match else 0


def _unresolved(package_name: str, reason: str) -> PackageMetadata:
    logger.debug("Package %s unresolved: %s", package_name, reason)
    return PackageMetadata(
        package_name=package_name,
        latest_version=None,
        is_compatible=None,
        error=reason,
    )


def _raise_for_status(response: httpx.Response) -> None:
    if not response.is_success:
        raise RegistryError(f"NuGet API error: {response.status_code} {response.reason_phrase}")


def _as_mapping(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise RegistryError(f"Malformed {what}: expected an object")
    return value


def _as_list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise RegistryError(f"Malformed {what}: expected a list")
    return value
