"""Conflict resolution between incoming package files and project files.

A conflict is raised by the copier whenever an incoming file differs
(ignoring whitespace) from the file already in the project. Three raw
checksums decide what happens to it:

- new: the incoming file in the package
- current: the file as it sits in the project now
- old: what the ledger recorded for the path after the previous operation

Under medium integrity, `new == old` means the package has not changed the
file since it was last copied (or kept), so whatever is in the project
stays. Otherwise `old == current` means nobody edited the project copy, so
the update is applied. Anything else means both sides changed and the
user decides, exactly as under high integrity.
"""

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path

from opus.config.schemas import IntegrityLevel
from opus.core.ledger import InstallationMap
from opus.host.base import IOInterface
from opus.utils.filesystem import (
    EMPTY_CHECKSUM,
    compute_checksum,
    copy_file,
    read_bytes_lenient,
    unified_diff,
)
from opus.utils.paths import project_relative, to_posix

logger = logging.getLogger("opus.resolver")

TAB = "    "


class Resolution(enum.Enum):
    """What happened to a single conflict."""

    UNCHANGED = "unchanged"  # package content unchanged, project copy left alone
    OVERWRITTEN = "overwritten"  # incoming file copied over the project copy
    KEPT = "kept"  # project copy kept, incoming checksum recorded as the baseline


@dataclass
class ResolutionReport:
    """Outcome of resolving a batch of conflicts.

    - outcomes: project path -> Resolution
    - updates: project path -> checksum to record in the ledger
    """

    outcomes: dict[str, Resolution] = field(default_factory=dict)
    updates: dict[str, str] = field(default_factory=dict)

    def paths_with(self, resolution: Resolution) -> list[str]:
        """Get the paths resolved a given way."""
        return [path for path, outcome in self.outcomes.items() if outcome is resolution]


class ConflictResolver:
    """Applies the integrity policy to copy conflicts."""

    def __init__(
        self,
        project_root: Path,
        integrity: IntegrityLevel,
        io: IOInterface,
    ):
        """Initialize the resolver.

        Args:
            project_root: Absolute project root
            integrity: Configured integrity level
            io: Host IO used for prompting
        """
        self.project_root = project_root.resolve()
        self.integrity = integrity
        self.io = io
        self._announced = False

    def resolve(self, conflicts: dict[Path, Path], ledger: InstallationMap) -> ResolutionReport:
        """Resolve every conflict.

        Args:
            conflicts: Incoming source file -> conflicting project file
            ledger: Installation map holding the previous checksums

        Returns:
            ResolutionReport whose updates the caller must merge into the ledger
        """
        report = ResolutionReport()
        self._announced = False

        for source, destination in conflicts.items():
            path = project_relative(destination, self.project_root) or to_posix(destination)
            new_checksum = compute_checksum(read_bytes_lenient(source))
            current_checksum = compute_checksum(read_bytes_lenient(destination))
            old_checksum = ledger.get_checksum(path) or EMPTY_CHECKSUM

            outcome = self._resolve_one(
                source, destination, path, new_checksum, old_checksum, current_checksum
            )
            report.outcomes[path] = outcome
            if outcome is not Resolution.UNCHANGED:
                report.updates[path] = new_checksum

            logger.debug("Conflict on %s resolved as %s", path, outcome.value)

        return report

    def _resolve_one(
        self,
        source: Path,
        destination: Path,
        path: str,
        new_checksum: str,
        old_checksum: str,
        current_checksum: str,
    ) -> Resolution:
        if self.integrity == "low":
            copy_file(source, destination)
            return Resolution.OVERWRITTEN

        if self.integrity == "medium":
            if new_checksum == old_checksum:
                return Resolution.UNCHANGED
            if old_checksum == current_checksum:
                copy_file(source, destination)
                return Resolution.OVERWRITTEN

        return self._prompt(source, destination, path)

    def _prompt(self, source: Path, destination: Path, path: str) -> Resolution:
        """Ask the user until they choose to overwrite or keep."""
        if not self._announced:
            self.io.write()
            self.io.write(f"{TAB}The following conflicts were found:")
            self.io.write()
            self._announced = True

        while True:
            answer = self.io.ask(
                f"{TAB}- {path} [o=overwrite (default), k=keep, d=diff]: ", "o"
            )
            choice = answer.strip().lower()[:1] or "o"

            if choice == "o":
                copy_file(source, destination)
                return Resolution.OVERWRITTEN
            if choice == "k":
                return Resolution.KEPT
            if choice == "d":
                diff = unified_diff(destination, source, path)
                self.io.write_diff(diff or f"{TAB}(files differ only in whitespace)")
