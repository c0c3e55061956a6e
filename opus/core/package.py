"""Package model representing an installed package."""

from pathlib import Path
from typing import Any

from opus.config.parser import PACKAGE_MANIFEST, load_package_manifest
from opus.config.schemas import PackageManifest


class Package:
    """Represents a package installed by the host package manager.

    A package is loaded from its installation root, which holds a
    package.json manifest.
    """

    def __init__(self, path: Path, manifest: PackageManifest):
        """Initialize a Package.

        Args:
            path: Path to the package's installation root
            manifest: Parsed package manifest
        """
        self._path = path.resolve()
        self._manifest = manifest

    @classmethod
    def load(cls, path: Path) -> "Package":
        """Load a package from disk.

        Args:
            path: Path to the package's installation root

        Returns:
            Loaded Package instance

        Raises:
            FileNotFoundError: If package.json is not found
        """
        path = path.resolve()
        if not (path / PACKAGE_MANIFEST).exists():
            raise FileNotFoundError(f"No {PACKAGE_MANIFEST} found in {path}")

        manifest = load_package_manifest(path)
        return cls(path, manifest)

    @property
    def path(self) -> Path:
        """Get the package's installation root."""
        return self._path

    @property
    def manifest(self) -> PackageManifest:
        """Get the package manifest."""
        return self._manifest

    @property
    def name(self) -> str:
        """Get the package name."""
        return self._manifest.name

    @property
    def version(self) -> str | None:
        """Get the package version."""
        return self._manifest.version

    @property
    def requires(self) -> list[str]:
        """Get the names of the packages this package depends on."""
        return list(self._manifest.require)

    def get_mappings(self, framework: str) -> Any:
        """Get the raw mapping the package declares for a framework.

        Returns:
            The declared value, or None if the package has nothing for it
        """
        section = self._manifest.opus
        if section is None:
            return None
        return section.get(framework)

    def supports(self, framework: str) -> bool:
        """Check whether the package declares mappings for a framework."""
        return self.get_mappings(framework) is not None

    def __repr__(self) -> str:
        return f"Package(name={self.name!r}, path={self._path!r})"
