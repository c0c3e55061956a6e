"""Installer session orchestrating package file copies.

The OpusInstaller is constructed once per host activation. It holds the
project's plugin settings and the installation map for the whole batch
of package operations the host performs, and exposes one hook per
lifecycle event:

- install(package): copy the package's mappings, resolve conflicts
- update(initial, target): release what the initial version owned, copy
  the target's mappings, resolve conflicts, remove what nobody owns
- uninstall(package): release what the package owned, remove what nobody owns

Releasing an integration package also releases the dependencies it mapped
files for, so their own mappings are copied again before cleanup.

Each hook works on a copy of the installation map. The copy only becomes
the session's map, and is only written to disk, once copying and
conflict resolution have succeeded, so a failed package never leaves
half-applied ownership behind for the rest of the batch.
"""

import logging
import os
from dataclasses import dataclass, field
from types import TracebackType
from typing import Literal

from opus.core.copier import Copier, CopyResult
from opus.core.ledger import InstallationMap, LedgerManager
from opus.core.mapping import PackageMap, build_package_map
from opus.core.package import Package
from opus.core.project import Project
from opus.core.reconciler import Reconciler
from opus.core.resolver import ConflictResolver, Resolution
from opus.host.base import IOInterface, PackageRepository
from opus.utils.paths import project_relative

logger = logging.getLogger("opus.installer")

DISABLE_ENV = "OPUS_DISABLED"
TAB = "    "

Operation = Literal["install", "update", "uninstall"]

PAST_TENSE: dict[str, str] = {
    "install": "Installed",
    "update": "Updated",
    "uninstall": "Uninstalled",
}


def is_disabled() -> bool:
    """Check whether Opus has been switched off through the environment."""
    return bool(os.environ.get(DISABLE_ENV))


@dataclass
class OperationResult:
    """Result of a single package hook."""

    package_name: str
    operation: Operation
    skipped: bool = False
    copied: list[str] = field(default_factory=list)
    resolutions: dict[str, Resolution] = field(default_factory=dict)
    removed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def conflict_count(self) -> int:
        return len(self.resolutions)

    @property
    def message(self) -> str:
        if self.skipped:
            return f"{self.package_name}: nothing to {self.operation}"
        parts = [f"{len(self.copied)} copied"]
        if self.resolutions:
            parts.append(f"{self.conflict_count} conflict(s)")
        if self.removed:
            parts.append(f"{len(self.removed)} removed")
        return f"{PAST_TENSE[self.operation]} {self.package_name}: {', '.join(parts)}"


class OpusInstaller:
    """Per-activation installer session.

    The host activates the session, fires hooks for each package
    operation, then deactivates it. Usable as a context manager.
    """

    EVENTS: dict[str, str] = {
        "post-package-install": "install",
        "pre-package-update": "update",
        "post-package-uninstall": "uninstall",
    }

    def __init__(
        self,
        project: Project,
        repository: PackageRepository,
        io: IOInterface,
        lock_timeout: float = 30.0,
    ):
        """Initialize the installer session.

        Args:
            project: The project packages are installed into
            repository: Host repository of installed packages
            io: Host IO for progress output and prompts
            lock_timeout: Seconds to wait for another installer to release the map
        """
        self.project = project
        self.repository = repository
        self.io = io
        self.framework = project.framework
        self.integrity = project.integrity
        self.enabled = project.enabled
        self.external_mapping = project.external_mapping
        self.ledger_manager = LedgerManager(project.root, lock_timeout=lock_timeout)
        self._active = False

    @classmethod
    def subscribed_events(cls) -> dict[str, str]:
        """Get the host events this installer hooks into.

        Returns an empty mapping when Opus is disabled through the environment.
        """
        if is_disabled():
            return {}
        return dict(cls.EVENTS)

    @property
    def ledger(self) -> InstallationMap:
        """Get the committed installation map."""
        return self.ledger_manager.ledger

    def activate(self) -> None:
        """Lock and load the installation map for a batch of operations."""
        self.ledger_manager.acquire()
        try:
            self.ledger_manager.load()
        except Exception:
            self.ledger_manager.release()
            raise
        self._active = True
        logger.debug(
            "Activated for framework %s (integrity=%s, enabled=%s)",
            self.framework,
            self.integrity,
            self.enabled,
        )

    def deactivate(self) -> None:
        """Write the installation map and release the lock."""
        if not self._active:
            return
        try:
            self.ledger_manager.save()
        finally:
            self.ledger_manager.release()
            self._active = False

    def __enter__(self) -> "OpusInstaller":
        self.activate()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.deactivate()

    def dispatch(self, event: str, *packages: Package) -> OperationResult | None:
        """Run the hook subscribed to a host event.

        Returns:
            The hook's result, or None if the event is not subscribed
        """
        hook = self.subscribed_events().get(event)
        if hook is None:
            return None
        result: OperationResult = getattr(self, hook)(*packages)
        return result

    def supports(self, package: Package) -> bool:
        """Check whether a package declares mappings for the active framework."""
        return self.enabled and package.supports(self.framework)

    def build_map(self, package: Package) -> PackageMap:
        """Resolve a package's declared mappings for the active framework."""
        return build_package_map(package, self.framework, self.external_mapping)

    def install(self, package: Package) -> OperationResult:
        """Copy a newly installed package's files into the project.

        Raises:
            OpusError: If the mapping is invalid or a copy fails
        """
        result = OperationResult(package.name, "install")
        if is_disabled() or not self.supports(package):
            result.skipped = True
            return result

        self._ensure_active()
        logger.info("Installing files for %s", package.name)

        working = self.ledger.copy()
        self._copy(package, self.build_map(package), working, result)
        self._commit(working)

        self.io.write()
        return result

    def update(self, initial: Package, target: Package) -> OperationResult:
        """Move the project from one version of a package to another.

        Raises:
            OpusError: If the mapping is invalid, a copy fails, or cleanup
                fails under high integrity
        """
        result = OperationResult(target.name, "update")
        initial_supported = self.supports(initial)
        target_supported = self.supports(target)

        if is_disabled() or not (initial_supported or target_supported):
            result.skipped = True
            return result

        self._ensure_active()
        logger.info("Updating files for %s", target.name)

        working = self.ledger.copy()
        package_map = self.build_map(target) if target_supported else PackageMap()

        # Paths only the initial version handled are left without owners
        if initial_supported:
            package_map.merge(self._release(initial, working))

        if package_map:
            self._copy(target, package_map, working, result)

        self._commit(working)
        self._cleanup(result)

        self.io.write()
        return result

    def uninstall(self, package: Package) -> OperationResult:
        """Remove a package's files from the project.

        Raises:
            OpusError: If the mapping is invalid or cleanup fails under high integrity
        """
        result = OperationResult(package.name, "uninstall")
        if is_disabled() or not self.supports(package):
            result.skipped = True
            return result

        self._ensure_active()
        logger.info("Removing files for %s", package.name)

        working = self.ledger.copy()
        restored = self._release(package, working)
        if restored:
            self._copy(package, restored, working, result)

        self._commit(working)
        self._cleanup(result)
        return result

    def _ensure_active(self) -> None:
        if not self._active:
            raise RuntimeError("Installer must be activated before running hooks")

    def _release(self, package: Package, ledger: InstallationMap) -> PackageMap:
        """Strip a package's claims from a map.

        An integration package claims paths under the names of the packages
        it maps files for, so stripping it also strips those packages' own
        claims. The mappings those packages still declare for themselves
        are returned so they can be claimed again before cleanup.
        """
        package_map = self.build_map(package)
        released = ledger.release(package_map.owners)
        logger.debug("Released %d path(s) held by %s", len(released), package.name)

        restored = PackageMap()
        installed = {p.name: p for p in self.repository.get_packages()}
        for owner in package_map:
            dependency = installed.get(owner)
            if owner == package.name or dependency is None or not self.supports(dependency):
                continue
            own = self.build_map(dependency).get(owner)
            if own:
                logger.debug("Restoring the files %s declares for itself", owner)
                restored.extend(owner, own)
        return restored

    def _copy(
        self,
        package: Package,
        package_map: PackageMap,
        ledger: InstallationMap,
        result: OperationResult,
    ) -> None:
        """Copy a package map into the project and resolve any conflicts."""
        copier = Copier(self.project.root, ledger)
        copy_result = CopyResult()

        installed = {p.name: p for p in self.repository.get_packages()}
        installed[package.name] = package

        for name in sorted(installed):
            if name not in package_map:
                continue

            root = self.repository.get_install_path(installed[name])
            display = project_relative(root, self.project.root) or str(root)
            self.io.write(f"{TAB}Copying files from {display}")

            copy_result.merge(copier.copy_package(name, root, package_map.get(name)))

        ledger.record_checksums(copy_result.updates)
        result.copied = sorted(copy_result.updates)

        if copy_result.has_conflicts:
            resolver = ConflictResolver(self.project.root, self.integrity, self.io)
            report = resolver.resolve(copy_result.conflicts, ledger)
            ledger.record_checksums(report.updates)
            result.resolutions = report.outcomes
            logger.info(
                "Resolved %d conflict(s) for %s: %d overwritten, %d kept, %d unchanged",
                len(report.outcomes),
                package.name,
                len(report.paths_with(Resolution.OVERWRITTEN)),
                len(report.paths_with(Resolution.KEPT)),
                len(report.paths_with(Resolution.UNCHANGED)),
            )

    def _commit(self, ledger: InstallationMap) -> None:
        self.ledger_manager.replace(ledger)
        self.ledger_manager.save()

    def _cleanup(self, result: OperationResult) -> None:
        """Remove unclaimed paths from the committed map, saving whatever was done."""
        reconciler = Reconciler(self.project.root, self.integrity, self.io)
        try:
            report = reconciler.cleanup(self.ledger)
        finally:
            self.ledger_manager.save()

        result.removed = report.removed
        result.warnings.extend(report.warnings)
        if report.removed:
            logger.info("Removed %d unclaimed path(s)", len(report.removed))
