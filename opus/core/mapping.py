"""Package map resolution.

A package declares, per framework identity, which of its files belong
where in the project:

    {"acme/app": {"assets/widget.js": "public/js/"}}

Integration packages may also declare files for other packages they
depend on, keyed by that package's name (wildcards allowed):

    {"acme/app": {"acme/theme-*": {"css/": "public/css/"}}}

The package map flattens both forms into owner -> {source: destination}.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from opus.core.package import Package
from opus.errors import ConfigurationError

logger = logging.getLogger("opus.mapping")


@dataclass
class PackageMap:
    """Resolved sources and destinations, grouped by the package that owns them.

    Sources are relative to the owning package's installation root and
    destinations are relative to the project root.
    """

    entries: dict[str, dict[str, str]] = field(default_factory=dict)

    def add(self, owner: str, source: str, destination: str) -> None:
        """Map a single source to a destination for an owner."""
        self.entries.setdefault(owner, {})[source] = destination

    def extend(self, owner: str, mapping: dict[str, str]) -> None:
        """Map several sources to destinations for an owner."""
        self.entries.setdefault(owner, {}).update(mapping)

    def merge(self, other: "PackageMap") -> "PackageMap":
        """Fold another map into this one, owner by owner."""
        for owner, mapping in other.entries.items():
            self.extend(owner, mapping)
        return self

    def get(self, owner: str) -> dict[str, str]:
        """Get an owner's sources and destinations (empty if none)."""
        return self.entries.get(owner, {})

    @property
    def owners(self) -> list[str]:
        """Names of all packages this map copies files for."""
        return list(self.entries)

    def __contains__(self, owner: object) -> bool:
        return owner in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def wildcard_pattern(name: str) -> re.Pattern[str]:
    """Compile a package name with `*` wildcards to an anchored pattern."""
    return re.compile("(.*)".join(re.escape(part) for part in name.split("*")))


def build_package_map(
    package: Package,
    framework: str,
    external_mapping: bool = False,
) -> PackageMap:
    """Build the package map for a package.

    Args:
        package: The package whose declared mappings are resolved
        framework: Active framework identity selecting the mapping
        external_mapping: Whether mappings for other packages are allowed

    Returns:
        The resolved PackageMap; empty if nothing is declared for the framework

    Raises:
        ConfigurationError: If a mapping is malformed or external mapping is disabled
    """
    package_map = PackageMap()
    mappings = package.get_mappings(framework)

    if mappings is None:
        return package_map

    if not isinstance(mappings, dict):
        raise ConfigurationError(
            f"Invalid mapping for framework {framework}, expected an object",
            package_name=package.name,
        )

    for element, value in mappings.items():
        if isinstance(value, dict):
            if element != package.name and not external_mapping:
                raise ConfigurationError(
                    f"Cannot perform external mapping for {element}, disabled",
                    package_name=package.name,
                )

            targets = _validate_targets(package, element, value)
            pattern = wildcard_pattern(element)

            # Integration packages can only handle packages they depend on
            for dependency in package.requires:
                if pattern.fullmatch(dependency):
                    logger.debug("%s maps files for dependency %s", package.name, dependency)
                    package_map.extend(dependency, targets)

            package_map.extend(element, targets)

        elif isinstance(value, str):
            package_map.add(package.name, element, value)

        else:
            raise ConfigurationError(
                f"Invalid element {element} of unexpected type {type(value).__name__}",
                package_name=package.name,
            )

    return package_map


def _validate_targets(package: Package, element: str, value: dict[Any, Any]) -> dict[str, str]:
    for source, destination in value.items():
        if not isinstance(destination, str):
            raise ConfigurationError(
                f"Invalid destination for {source} under {element}, "
                f"unexpected type {type(destination).__name__}",
                package_name=package.name,
            )
    return dict(value)
