"""Installation map (ledger) tracking copied paths.

The ledger records, for every project path Opus has copied or created,
the packages that currently claim it, plus the checksum each copied file
had after the last operation. It is stored as JSON at the project root:

    {
      "public/js/widget.js": ["acme/widgets"],
      "public/js": ["acme/widgets"],
      "__CHECKSUMS__": {"public/js/widget.js": "5d41402abc4b2a76b9719d911017c592"}
    }
"""

import copy
import json
import logging
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from opus.errors import LedgerCorruptError, LedgerLockedError
from opus.utils.paths import depth, normalize_key

logger = logging.getLogger("opus.ledger")

CHECKSUMS_KEY = "__CHECKSUMS__"


@dataclass
class InstallationMap:
    """In-memory installation map.

    Keys of `owners` and `checksums` are normalized project-relative paths.
    Keys of the persisted file that are neither are kept in `extra` so they
    survive a load/save cycle untouched.
    """

    owners: dict[str, set[str]] = field(default_factory=dict)
    checksums: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "InstallationMap":
        """Build a map from its parsed JSON form.

        Raises:
            LedgerCorruptError: If the structure is not a valid installation map
        """
        if not isinstance(data, dict):
            raise LedgerCorruptError("Installation map must be a JSON object")

        ledger = cls()
        for key, value in data.items():
            if key == CHECKSUMS_KEY:
                if not isinstance(value, dict) or not all(
                    isinstance(v, str) for v in value.values()
                ):
                    raise LedgerCorruptError(f"Invalid {CHECKSUMS_KEY} section in installation map")
                ledger.checksums = {normalize_key(k): v for k, v in value.items()}
            elif isinstance(value, list):
                if not all(isinstance(owner, str) for owner in value):
                    raise LedgerCorruptError(f"Invalid owner list for {key!r} in installation map")
                ledger.owners.setdefault(normalize_key(key), set()).update(value)
            else:
                ledger.extra[key] = value

        return ledger

    def to_dict(self) -> dict[str, Any]:
        """Serialize the map with deterministic ordering.

        Paths are ordered deepest first, owner lists and checksums sorted.
        """
        data: dict[str, Any] = {}
        for path in sorted(self.owners, key=lambda p: (-depth(p), -len(p), p)):
            data[path] = sorted(self.owners[path])
        data.update(self.extra)
        data[CHECKSUMS_KEY] = dict(sorted(self.checksums.items()))
        return data

    def copy(self) -> "InstallationMap":
        """Get an independent copy of this map."""
        return copy.deepcopy(self)

    def claim(self, path: str, owner: str) -> None:
        """Record that an owner places content at a path."""
        self.owners.setdefault(normalize_key(path), set()).add(owner)

    def release(self, owners: Iterable[str]) -> list[str]:
        """Strip owners from every path they claim.

        Paths left without owners stay in the map until reconciled.

        Returns:
            Paths that lost at least one owner
        """
        released = set(owners)
        touched: list[str] = []
        for path, claimed in self.owners.items():
            if claimed & released:
                claimed -= released
                touched.append(path)
        return touched

    def owners_of(self, path: str) -> set[str]:
        """Get the owners claiming a path."""
        return set(self.owners.get(normalize_key(path), set()))

    def unclaimed(self) -> list[str]:
        """Get paths with no remaining owners, deepest first."""
        paths = [path for path, claimed in self.owners.items() if not claimed]
        return sorted(paths, key=lambda p: (-depth(p), -len(p), p))

    def forget(self, path: str) -> None:
        """Remove a path and its checksum from the map."""
        key = normalize_key(path)
        self.owners.pop(key, None)
        self.checksums.pop(key, None)

    def get_checksum(self, path: str) -> str | None:
        """Get the last recorded checksum for a path."""
        return self.checksums.get(normalize_key(path))

    def record_checksums(self, updates: dict[str, str]) -> None:
        """Merge new checksums into the map."""
        for path, checksum in updates.items():
            self.checksums[normalize_key(path)] = checksum

    def prune_checksums(self) -> list[str]:
        """Drop checksums for paths no longer in the owner map.

        Returns:
            Paths whose checksums were dropped
        """
        orphaned = [path for path in self.checksums if path not in self.owners]
        for path in orphaned:
            del self.checksums[path]
        return orphaned

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_key(path) in self.owners

    def __len__(self) -> int:
        return len(self.owners)


class LedgerManager:
    """Manages the opus.map file for a project.

    The map is read once, held in memory while the installer is active,
    and written back atomically. An exclusive file lock keeps two
    installer processes from interleaving their read-modify-write cycles.
    """

    LEDGER_FILE = "opus.map"
    LOCK_SUFFIX = ".lock"

    def __init__(self, project_root: Path, lock_timeout: float = 30.0):
        """Initialize the ledger manager.

        Args:
            project_root: Path to the project root
            lock_timeout: Seconds to wait for another installer to release the map
        """
        self.project_root = project_root
        self._ledger: InstallationMap | None = None
        self._lock = FileLock(str(self.lock_path), timeout=lock_timeout)

    @property
    def path(self) -> Path:
        """Get the installation map path."""
        return self.project_root / self.LEDGER_FILE

    @property
    def lock_path(self) -> Path:
        """Get the lock file path."""
        return self.project_root / (self.LEDGER_FILE + self.LOCK_SUFFIX)

    @property
    def ledger(self) -> InstallationMap:
        """Get the current map, loading it if necessary."""
        if self._ledger is None:
            self.load()
        assert self._ledger is not None
        return self._ledger

    def acquire(self) -> None:
        """Take the exclusive lock on the installation map.

        Raises:
            LedgerLockedError: If another process holds the lock past the timeout
        """
        try:
            self._lock.acquire()
        except Timeout as e:
            raise LedgerLockedError(
                f"Installation map {self.path} is locked by another process", self.path
            ) from e

    def release(self) -> None:
        """Release the lock on the installation map."""
        if self._lock.is_locked:
            self._lock.release()

    def load(self) -> InstallationMap:
        """Load the installation map from disk.

        An absent file yields an empty map. An existing file that cannot be
        read or parsed is an error: proceeding with an empty map would
        make wrong ownership and cleanup decisions.

        Raises:
            LedgerCorruptError: If the file exists but is unusable
        """
        if not self.path.exists():
            logger.debug("No installation map at %s, starting empty", self.path)
            self._ledger = InstallationMap()
            return self._ledger

        if self.path.is_dir():
            raise LedgerCorruptError(f"Cannot read map file at {self.path}", self.path)

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise LedgerCorruptError(f"Broken map file at {self.path}: {e}", self.path) from e
        except OSError as e:
            raise LedgerCorruptError(f"Cannot read map file at {self.path}: {e}", self.path) from e

        try:
            self._ledger = InstallationMap.from_dict(data)
        except LedgerCorruptError as e:
            raise LedgerCorruptError(f"Broken map file at {self.path}: {e}", self.path) from e

        logger.debug("Loaded installation map with %d path(s)", len(self._ledger))
        return self._ledger

    def replace(self, ledger: InstallationMap) -> None:
        """Make a working copy the current map."""
        self._ledger = ledger

    def save(self) -> None:
        """Write the current map to disk atomically."""
        if self._ledger is None:
            return

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.LEDGER_FILE}.", suffix=".tmp", dir=self.project_root
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._ledger.to_dict(), f, indent=2)
                f.write("\n")
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Saved installation map to %s", self.path)
