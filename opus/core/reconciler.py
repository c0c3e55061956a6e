"""Removes project paths no longer claimed by any package."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from opus.config.schemas import IntegrityLevel
from opus.core.ledger import InstallationMap
from opus.errors import CleanupError
from opus.host.base import IOInterface
from opus.utils.filesystem import list_entries
from opus.utils.paths import from_key

logger = logging.getLogger("opus.reconciler")

TAB = "    "


@dataclass
class CleanupReport:
    """Outcome of a cleanup pass."""

    removed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class Reconciler:
    """Deletes unclaimed files and emptied directories.

    Paths are visited deepest first, so a directory is only considered
    after everything Opus put inside it has been handled. Directories
    still holding content are left on disk.
    """

    def __init__(
        self,
        project_root: Path,
        integrity: IntegrityLevel,
        io: IOInterface,
    ):
        """Initialize the reconciler.

        Args:
            project_root: Absolute project root
            integrity: Configured integrity level
            io: Host IO used for warnings
        """
        self.project_root = project_root.resolve()
        self.integrity = integrity
        self.io = io

    def cleanup(self, ledger: InstallationMap) -> CleanupReport:
        """Remove every unclaimed path and drop it from the ledger.

        Args:
            ledger: Installation map after ownership was adjusted; mutated in place

        Returns:
            CleanupReport of what was removed, skipped or warned about

        Raises:
            CleanupError: Under high integrity, when a removal fails. Paths
                handled before the failure stay removed from the ledger.
        """
        report = CleanupReport()

        for path in ledger.unclaimed():
            installation_path = from_key(path, self.project_root)

            if installation_path.is_dir() and not installation_path.is_symlink():
                if self._has_children(installation_path):
                    logger.debug("Keeping non-empty directory %s", path)
                    report.skipped.append(path)
                else:
                    self._remove(installation_path, path, report, is_directory=True)
            elif installation_path.exists() or installation_path.is_symlink():
                self._remove(installation_path, path, report, is_directory=False)
            else:
                logger.debug("Unclaimed path %s is already gone", path)

            ledger.forget(path)

        ledger.prune_checksums()
        return report

    def _has_children(self, directory: Path) -> bool:
        try:
            return bool(list_entries(directory))
        except OSError:
            return True

    def _remove(
        self,
        installation_path: Path,
        path: str,
        report: CleanupReport,
        is_directory: bool,
    ) -> None:
        try:
            if is_directory:
                installation_path.rmdir()
            else:
                installation_path.unlink()
        except OSError as e:
            self._handle_failure(path, report, is_directory, e)
            return

        logger.debug("Removed %s", path)
        report.removed.append(path)

    def _handle_failure(
        self,
        path: str,
        report: CleanupReport,
        is_directory: bool,
        error: OSError,
    ) -> None:
        if self.integrity == "low":
            logger.debug("Ignoring failure removing %s: %s", path, error)
            return

        if self.integrity == "medium":
            if is_directory:
                warning = f"unable to remove empty directory {path}"
            else:
                warning = f"unable to remove unused file {path}; remove manually"
            logger.warning("Cleanup: %s (%s)", warning, error)
            self.io.write(f"{TAB}Warning: {warning}")
            report.warnings.append(warning)
            return

        if is_directory:
            message = f"Error removing empty directory {path}"
        else:
            message = f"Error removing unused file {path}, restore file or check permissions and try again"
        raise CleanupError(message, path) from error
