"""Copies package files into the project while recording them in the ledger."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from opus.core.ledger import InstallationMap
from opus.errors import (
    ConfigurationError,
    DirectoryConflictError,
    PermissionDeniedError,
    SourceNotFoundError,
)
from opus.utils.filesystem import (
    compute_content_checksum,
    compute_file_hash,
    copy_file,
    is_writable,
    list_entries,
)
from opus.utils.paths import (
    ends_with_separator,
    ltrim_separators,
    project_relative,
    rtrim_separators,
    to_posix,
    trim_separators,
)

logger = logging.getLogger("opus.copier")


@dataclass
class CopyResult:
    """Outcome of copying one or more sources.

    - updates: project path -> checksum of content just copied there
    - conflicts: source file -> existing destination file whose content differs
    """

    updates: dict[str, str] = field(default_factory=dict)
    conflicts: dict[Path, Path] = field(default_factory=dict)

    def merge(self, other: "CopyResult") -> "CopyResult":
        """Fold another result into this one."""
        self.updates.update(other.updates)
        self.conflicts.update(other.conflicts)
        return self

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class Copier:
    """Copies sources to destinations under the project root.

    Every directory created or traversed and every file copied (or left
    in conflict) is claimed in the ledger for the owning package.
    """

    def __init__(self, project_root: Path, ledger: InstallationMap):
        """Initialize the copier.

        Args:
            project_root: Absolute project root destinations are relative to
            ledger: Working installation map to record ownership in
        """
        self.project_root = project_root.resolve()
        self.ledger = ledger

    def copy_package(self, owner: str, package_root: Path, mapping: dict[str, str]) -> CopyResult:
        """Copy every source an owner's mapping declares.

        Args:
            owner: Name of the package the files belong to
            package_root: Installation root of that package
            mapping: Sources (relative to package_root) to destinations (relative to the project)

        Returns:
            Combined CopyResult
        """
        result = CopyResult()
        for source, destination in mapping.items():
            source_path = package_root / trim_separators(source)
            result.merge(self.copy(source_path, self._destination(owner, destination), owner))
        return result

    def copy(self, source: Path, destination: str, owner: str) -> CopyResult:
        """Copy a file or directory tree.

        A destination ending in a separator, or naming an existing directory,
        receives the source under its own name.

        Args:
            source: Source file or directory
            destination: Absolute destination, trailing separator significant
            owner: Package name to claim paths for

        Returns:
            CopyResult for everything copied beneath this source

        Raises:
            SourceNotFoundError: If the source is missing or not a regular file/directory
            DirectoryConflictError: If a file and a directory collide
            PermissionDeniedError: If a destination cannot be written
        """
        try:
            source = source.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise SourceNotFoundError(
                f"Cannot install, bad source entry {source} while trying to install {owner}",
                package_name=owner,
            ) from e

        if source.is_file():
            return self._copy_file(source, destination, owner)
        if source.is_dir():
            return self._copy_directory(source, destination, owner)

        raise SourceNotFoundError(
            f'Cannot copy source "{source}", not readable or not a normal file or directory',
            package_name=owner,
        )

    def create_directory(self, directory: Path, owner: str) -> None:
        """Create a directory and any missing parents, claiming each one.

        Raises:
            DirectoryConflictError: If the path exists but is not a directory
            PermissionDeniedError: If it cannot be created or is not writable
        """
        if not directory.exists():
            if directory.parent != directory:
                self.create_directory(directory.parent, owner)
            try:
                directory.mkdir()
            except OSError as e:
                raise PermissionDeniedError(
                    f'Cannot install, failure while creating requisite directory "{directory}"',
                    package_name=owner,
                ) from e
            logger.debug("Created directory %s", directory)
        else:
            if not directory.is_dir():
                raise DirectoryConflictError(
                    f'Cannot install, requisite path "{directory}" exists, but is not a directory',
                    package_name=owner,
                )
            if not is_writable(directory):
                raise PermissionDeniedError(
                    f'Cannot install, requisite directory "{directory}" is not writable',
                    package_name=owner,
                )

        self._claim(directory, owner)

    def _copy_file(self, source: Path, destination: str, owner: str) -> CopyResult:
        result = CopyResult()
        dest_path = Path(rtrim_separators(destination))

        if ends_with_separator(destination) or dest_path.is_dir():
            target_dir = dest_path
            file_name = source.name
        else:
            target_dir = dest_path.parent
            file_name = dest_path.name

        self.create_directory(target_dir, owner)
        target = target_dir / file_name

        if target.is_dir():
            raise DirectoryConflictError(
                f'Cannot copy source "{source}" (file) to "{target}" (directory)',
                package_name=owner,
            )

        try:
            incoming = compute_content_checksum(source)
        except OSError as e:
            raise SourceNotFoundError(
                f'Cannot copy source "{source}", file is not readable',
                package_name=owner,
            ) from e

        if target.exists():
            if not is_writable(target):
                raise PermissionDeniedError(
                    f'Cannot install, cannot write to file at "{target}"',
                    package_name=owner,
                )
            try:
                existing = compute_content_checksum(target)
            except OSError as e:
                raise PermissionDeniedError(
                    f'Cannot install, cannot read file at "{target}"',
                    package_name=owner,
                ) from e
            if incoming != existing:
                logger.debug("Conflict between %s and %s", source, target)
                result.conflicts[source] = target

        if source not in result.conflicts:
            try:
                copy_file(source, target)
                checksum = compute_file_hash(target)
            except OSError as e:
                raise PermissionDeniedError(
                    f'Cannot install, failure while copying "{source}" to "{target}"',
                    package_name=owner,
                ) from e
            key = project_relative(target, self.project_root)
            if key:
                result.updates[key] = checksum
            logger.debug("Copied %s to %s", source, target)

        # Ownership is claimed even while a conflict awaits resolution
        self._claim(target, owner)
        return result

    def _copy_directory(self, source: Path, destination: str, owner: str) -> CopyResult:
        result = CopyResult()
        dest_path = Path(rtrim_separators(destination))

        if dest_path.is_file():
            raise DirectoryConflictError(
                f'Cannot copy source "{source}" (directory) to "{dest_path}" (file)',
                package_name=owner,
            )

        target_dir = dest_path / source.name if ends_with_separator(destination) else dest_path
        self.create_directory(target_dir, owner)

        try:
            children = list_entries(source)
        except OSError as e:
            raise SourceNotFoundError(
                f'Cannot copy source "{source}", directory is not readable',
                package_name=owner,
            ) from e

        for child in children:
            result.merge(self.copy(child, str(target_dir / child.name), owner))

        return result

    def _destination(self, owner: str, destination: str) -> str:
        """Anchor a declared destination at the project root, keeping a trailing separator."""
        absolute = os.path.normpath(
            str(self.project_root) + os.sep + ltrim_separators(to_posix(destination))
        )

        if project_relative(Path(absolute), self.project_root) is None:
            raise ConfigurationError(
                f"Destination {destination} lies outside the project",
                package_name=owner,
            )
        return absolute + os.sep if ends_with_separator(destination) else absolute

    def _claim(self, path: Path, owner: str) -> None:
        key = project_relative(path, self.project_root)
        # The project root itself and anything outside it are never tracked
        if key:
            self.ledger.claim(key, owner)
