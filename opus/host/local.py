"""Local file system package repository."""

from __future__ import annotations

import logging
from pathlib import Path

from opus.config.parser import PACKAGE_MANIFEST
from opus.core.package import Package
from opus.host.base import PackageRepository

logger = logging.getLogger(__name__)


class LocalRepository(PackageRepository):
    """Repository of packages installed into a vendor directory.

    Packages live either directly under the vendor directory
    (vendor/<name>/package.json) or one level deeper for namespaced names
    (vendor/<namespace>/<name>/package.json).
    """

    def __init__(self, vendor_dir: Path):
        """Initialize the local repository.

        Args:
            vendor_dir: Directory holding installed packages
        """
        self._vendor_dir = vendor_dir.resolve()
        self._packages: list[Package] | None = None

        logger.info("Initializing local repository for %s", self._vendor_dir)

    @property
    def vendor_dir(self) -> Path:
        """Get the vendor directory this repository scans."""
        return self._vendor_dir

    def get_packages(self) -> list[Package]:
        """Get all packages found in the vendor directory, sorted by name."""
        if self._packages is None:
            self._packages = self._scan()
        return list(self._packages)

    def refresh(self) -> None:
        """Forget the cached scan so the next lookup re-reads the vendor directory."""
        self._packages = None

    def _scan(self) -> list[Package]:
        if not self._vendor_dir.is_dir():
            logger.debug("Vendor directory %s does not exist", self._vendor_dir)
            return []

        packages: dict[str, Package] = {}
        for pattern in (f"*/{PACKAGE_MANIFEST}", f"*/*/{PACKAGE_MANIFEST}"):
            for manifest_path in sorted(self._vendor_dir.glob(pattern)):
                root = manifest_path.parent
                # A package's own files may include a package.json
                if root.parent != self._vendor_dir and (root.parent / PACKAGE_MANIFEST).exists():
                    continue
                package = Package.load(root)
                if package.name in packages:
                    logger.warning(
                        "Package %s found twice, ignoring %s", package.name, package.path
                    )
                    continue
                packages[package.name] = package
                logger.debug("Found package %s at %s", package.name, root)

        return [packages[name] for name in sorted(packages)]
