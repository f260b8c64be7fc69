"""NuGet resolver tests against a mocked registry."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pytest

from umbraco_audit.nuget import (
    NuGetResolver,
    compare_versions,
    is_prerelease,
    version_key,
)

REGISTRATION = "https://api.nuget.org/v3/registration5-semver1"
FLAT = "https://api.nuget.org/v3-flatcontainer"


def _leaf(version: str, *frameworks: str) -> dict[str, Any]:
    entry: dict[str, Any] = {"id": "Pkg", "version": version}
    if frameworks:
        entry["dependencyGroups"] = [{"targetFramework": item} for item in frameworks]
    return {"catalogEntry": entry}


def _index(*pages: list[dict[str, Any]]) -> dict[str, Any]:
    return {"count": len(pages), "items": [{"items": page} for page in pages]}


class _Registry:
    """Serves canned JSON per URL and counts requests."""

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = routes
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404)
        if isinstance(route, httpx.Response):
            return route
        if isinstance(route, bytes):
            return httpx.Response(200, content=route)
        return httpx.Response(200, json=route)


@asynccontextmanager
async def _resolver(handler: Callable[..., Any]) -> AsyncIterator[NuGetResolver]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield NuGetResolver(client=client)


def _index_url(package_id: str) -> str:
    return f"{REGISTRATION}/{package_id}/index.json"


@pytest.mark.asyncio
async def test_resolve_picks_highest_stable_version() -> None:
    registry = _Registry(
        {
            _index_url("pkg"): _index(
                [
                    _leaf("2.0.0", "net8.0"),
                    _leaf("2.1.0-beta", "net10.0"),
                    _leaf("2.0.5", "net10.0"),
                ]
            )
        }
    )
    async with _resolver(registry) as resolver:
        metadata = await resolver.resolve("Pkg")

    assert metadata.package_name == "Pkg"
    assert metadata.latest_version == "2.0.5"
    assert metadata.is_compatible is True
    assert metadata.error is None
    assert registry.requests == [_index_url("pkg")]


@pytest.mark.asyncio
async def test_resolve_reports_incompatible_target_frameworks() -> None:
    registry = _Registry({_index_url("old"): _index([_leaf("1.0.0", "net6.0", "net8.0")])})
    async with _resolver(registry) as resolver:
        metadata = await resolver.resolve("Old")
    assert metadata.latest_version == "1.0.0"
    assert metadata.is_compatible is False


@pytest.mark.asyncio
async def test_resolve_accepts_dotted_netstandard_framework_names() -> None:
    registry = _Registry({_index_url("lib"): _index([_leaf("4.0.0", ".NETStandard2.0")])})
    async with _resolver(registry) as resolver:
        metadata = await resolver.resolve("Lib")
    assert metadata.is_compatible is True


@pytest.mark.asyncio
async def test_resolve_falls_back_to_nuspec_for_target_frameworks() -> None:
    nuspec = (
        b'<?xml version="1.0"?>'
        b'<package xmlns="http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd">'
        b"<metadata><id>Pkg</id><version>3.0.0</version><dependencies>"
        b'<group targetFramework="net10.0" />'
        b"</dependencies></metadata></package>"
    )
    registry = _Registry(
        {
            _index_url("pkg"): _index([_leaf("3.0.0")]),
            f"{FLAT}/pkg/3.0.0/pkg.nuspec": nuspec,
        }
    )
    async with _resolver(registry) as resolver:
        metadata = await resolver.resolve("Pkg")
    assert metadata.latest_version == "3.0.0"
    assert metadata.is_compatible is True


@pytest.mark.asyncio
async def test_resolve_leaves_compatibility_unknown_without_nuspec() -> None:
    registry = _Registry({_index_url("pkg"): _index([_leaf("3.0.0")])})
    async with _resolver(registry) as resolver:
        metadata = await resolver.resolve("Pkg")
    assert metadata.latest_version == "3.0.0"
    assert metadata.is_compatible is None


@pytest.mark.asyncio
async def test_resolve_fetches_pages_newest_first_until_a_stable_version() -> None:
    old_page = f"{REGISTRATION}/pkg/page/1.0.0/1.9.0.json"
    new_page = f"{REGISTRATION}/pkg/page/2.0.0-a/2.0.0-b.json"
    registry = _Registry(
        {
            _index_url("pkg"): {
                "items": [
                    {"@id": old_page, "lower": "1.0.0", "upper": "1.9.0"},
                    {"@id": new_page, "lower": "2.0.0-a", "upper": "2.0.0-b"},
                ]
            },
            new_page: {"items": [_leaf("2.0.0-a"), _leaf("2.0.0-b")]},
            old_page: {"items": [_leaf("1.0.0", "net10.0"), _leaf("1.9.0", "net10.0")]},
        }
    )
    async with _resolver(registry) as resolver:
        metadata = await resolver.resolve("Pkg")
    assert metadata.latest_version == "1.9.0"
    assert registry.requests == [_index_url("pkg"), new_page, old_page]


@pytest.mark.asyncio
async def test_resolve_handles_flat_leaf_index() -> None:
    registry = _Registry(
        {_index_url("pkg"): {"items": [_leaf("1.0.0", "net10.0"), _leaf("1.2.0", "net10.0")]}}
    )
    async with _resolver(registry) as resolver:
        metadata = await resolver.resolve("Pkg")
    assert metadata.latest_version == "1.2.0"


@pytest.mark.asyncio
async def test_resolve_unknown_package_is_an_error_record() -> None:
    async with _resolver(_Registry({})) as resolver:
        metadata = await resolver.resolve("Nope")
    assert metadata.latest_version is None
    assert metadata.is_compatible is None
    assert metadata.error == "Package not found"


@pytest.mark.asyncio
async def test_resolve_without_versions_or_stable_versions() -> None:
    registry = _Registry(
        {
            _index_url("empty"): {"items": []},
            _index_url("beta"): _index([_leaf("1.0.0-beta"), _leaf("2.0.0-rc.1")]),
        }
    )
    async with _resolver(registry) as resolver:
        empty = await resolver.resolve("Empty")
        beta = await resolver.resolve("Beta")

    assert empty.error == "No versions found"
    assert beta.error == "No stable versions found"
    assert beta.latest_version is None


@pytest.mark.asyncio
async def test_resolve_server_error_does_not_raise() -> None:
    registry = _Registry({_index_url("pkg"): httpx.Response(500)})
    async with _resolver(registry) as resolver:
        metadata = await resolver.resolve("Pkg")
    assert metadata.latest_version is None
    assert metadata.error == "NuGet API error: 500 Internal Server Error"


@pytest.mark.asyncio
async def test_resolve_network_failure_does_not_raise() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _resolver(handler) as resolver:
        metadata = await resolver.resolve("Pkg")
    assert metadata.latest_version is None
    assert "connection refused" in (metadata.error or "")


@pytest.mark.asyncio
async def test_resolve_caches_successes_and_failures() -> None:
    registry = _Registry({_index_url("pkg"): _index([_leaf("1.0.0", "net10.0")])})

    async with _resolver(registry) as resolver:
        for _ in range(3):
            await resolver.resolve("Pkg")
            await resolver.resolve("Missing")

    assert registry.requests == [_index_url("pkg"), _index_url("missing")]
    assert resolver.cached("Pkg").latest_version == "1.0.0"
    assert resolver.cached("Missing").error == "Package not found"
    assert resolver.cached("Other") is None


@pytest.mark.asyncio
async def test_resolve_batch_isolates_failures() -> None:
    registry = _Registry(
        {
            _index_url("good"): _index([_leaf("1.0.0", "net10.0")]),
            _index_url("broken"): httpx.Response(503),
        }
    )
    async with _resolver(registry) as resolver:
        results = await resolver.resolve_batch(["Good", "Broken", "Missing"])

    assert list(results) == ["Good", "Broken", "Missing"]
    assert results["Good"].latest_version == "1.0.0"
    assert results["Broken"].error == "NuGet API error: 503 Service Unavailable"
    assert results["Missing"].error == "Package not found"


@pytest.mark.asyncio
async def test_resolve_batch_sends_lookups_concurrently() -> None:
    second_started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        package_id = request.url.path.split("/")[-2]
        if package_id == "first":
            # Only completes when the second lookup is in flight at the same time.
            await asyncio.wait_for(second_started.wait(), timeout=2)
        else:
            second_started.set()
        return httpx.Response(200, json=_index([_leaf("1.0.0", "net10.0")]))

    async with _resolver(handler) as resolver:
        results = await resolver.resolve_batch(["First", "Second"])

    assert results["First"].latest_version == "1.0.0"
    assert results["Second"].latest_version == "1.0.0"


@pytest.mark.asyncio
async def test_resolve_batch_with_no_packages() -> None:
    async with _resolver(_Registry({})) as resolver:
        assert await resolver.resolve_batch([]) == {}


def test_version_helpers() -> None:
    assert is_prerelease("2.1.0-beta")
    assert not is_prerelease("2.1.0")
    assert not is_prerelease("2.1.0+build-5")
    assert version_key("1.0") == version_key("1.0.0.0")
    assert compare_versions("13.5.0", "13.10.0") == -1
    assert compare_versions("17.0.0", "17.0.0-rc1") == 1
    assert compare_versions("3.1.1", "3.1.1") == 0
