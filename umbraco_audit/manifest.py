"""``.csproj`` manifest parsing."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from xml.etree import ElementTree

logger = logging.getLogger(__name__)

FRAMEWORK_PACKAGE_PREFIX = "Umbraco."
PRIMARY_PACKAGE = "Umbraco.Cms"


@dataclass(frozen=True, slots=True)
class PackageReference:
    """A package declared in a project manifest."""

    name: str
    version: str


def parse_manifest(path: Path) -> list[PackageReference]:
    """Return the ``PackageReference`` entries of a project file.

    A missing, unreadable or malformed file yields an empty list.
    """
    try:
        root = ElementTree.fromstring(path.read_bytes())
    except (OSError, ElementTree.ParseError) as exc:
        logger.debug("Could not parse manifest %s: %s", path, exc)
        return []

    if _local_name(root.tag) != "Project":
        logger.debug("No Project element in %s", path)
        return []

    references: list[PackageReference] = []
    for item_group in _children(root, "ItemGroup"):
        for element in _children(item_group, "PackageReference"):
            reference = _to_reference(element)
            if reference is not None:
                references.append(reference)

    logger.debug("Found %d package references in %s", len(references), path)
    return references


def is_framework_package(name: str) -> bool:
    """Return True for packages in the Umbraco namespace."""
    return name.startswith(FRAMEWORK_PACKAGE_PREFIX)


def extract_primary_version(references: Iterable[PackageReference]) -> str | None:
    """Return the declared version of the primary ``Umbraco.Cms`` package, if any."""
    for reference in references:
        if reference.name == PRIMARY_PACKAGE:
            return reference.version
    return None


def _to_reference(element: ElementTree.Element) -> PackageReference | None:
    name = element.get("Include") or element.get("Update")
    version = element.get("Version")
    if version is None:
        # <PackageReference Include="x"><Version>1.0</Version></PackageReference>
        for child in _children(element, "Version"):
            version = (child.text or "").strip() or None
            break
    if not name or not version:
        return None
    return PackageReference(name=name.strip(), version=version.strip())


def _children(element: ElementTree.Element, name: str) -> list[ElementTree.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _local_name(tag: object) -> str:
    # Legacy project files put every element in the MSBuild XML namespace.
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]
