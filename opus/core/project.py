"""Project model representing the host project Opus installs into."""

from pathlib import Path

from opus.config.parser import (
    PROJECT_MANIFEST,
    find_project_root,
    load_project_manifest,
    save_yaml,
)
from opus.config.schemas import IntegrityLevel, ProjectManifest


class Project:
    """Represents the root project packages are installed into.

    A project is defined by its opus.yaml manifest. The plugin settings
    it declares are fixed for the lifetime of an installer session.
    """

    def __init__(self, root: Path, manifest: ProjectManifest):
        """Initialize a Project.

        Args:
            root: Path to the project root directory
            manifest: Parsed project manifest
        """
        self._root = root.resolve()
        self._manifest = manifest

    @classmethod
    def load(cls, path: Path | None = None) -> "Project":
        """Load a project from disk.

        Args:
            path: Path to the project root, or None to search from cwd

        Returns:
            Loaded Project instance

        Raises:
            FileNotFoundError: If no project is found
        """
        if path is None:
            path = find_project_root()
            if path is None:
                raise FileNotFoundError(
                    f"No {PROJECT_MANIFEST} found in current directory or any parent directory"
                )
        else:
            path = path.resolve()
            if not (path / PROJECT_MANIFEST).exists():
                raise FileNotFoundError(f"No {PROJECT_MANIFEST} found in {path}")

        manifest = load_project_manifest(path)
        return cls(path, manifest)

    @classmethod
    def init(
        cls,
        path: Path,
        name: str,
        integrity: IntegrityLevel = "medium",
    ) -> "Project":
        """Initialize a new project with the plugin enabled.

        Args:
            path: Path to the project root directory
            name: Project name (also the default framework identity)
            integrity: Integrity level to record

        Returns:
            New Project instance

        Raises:
            FileExistsError: If opus.yaml already exists
        """
        path = path.resolve()
        manifest_path = path / PROJECT_MANIFEST

        if manifest_path.exists():
            raise FileExistsError(f"Project already initialized: {manifest_path}")

        manifest = ProjectManifest.model_validate(
            {"name": name, "opus": {"enabled": True, "options": {"integrity": integrity}}}
        )
        save_yaml(manifest_path, manifest.model_dump(by_alias=True, exclude_none=True))
        return cls(path, manifest)

    @property
    def root(self) -> Path:
        """Get the project root directory."""
        return self._root

    @property
    def name(self) -> str:
        """Get the project name."""
        return self._manifest.name

    @property
    def manifest(self) -> ProjectManifest:
        """Get the underlying manifest."""
        return self._manifest

    @property
    def vendor_dir(self) -> Path:
        """Get the directory installed packages live in."""
        return self._root / self._manifest.vendor_dir

    @property
    def framework(self) -> str:
        """Get the framework identity packages map their files for."""
        return self._manifest.opus.options.framework or self.name

    @property
    def enabled(self) -> bool:
        """Whether the plugin is enabled for this project.

        Setting a framework explicitly used to be how projects opted in, so
        it still enables the plugin unless `enabled` is set explicitly.
        """
        settings = self._manifest.opus
        if settings.enabled is not None:
            return settings.enabled
        return settings.options.framework is not None

    @property
    def integrity(self) -> IntegrityLevel:
        """Get the configured integrity level."""
        return self._manifest.opus.options.integrity

    @property
    def external_mapping(self) -> bool:
        """Whether packages may map files on behalf of their dependencies."""
        return self._manifest.opus.options.external_mapping

    def __repr__(self) -> str:
        return f"Project(root={self._root!r}, name={self.name!r})"
