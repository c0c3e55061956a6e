"""Shared fixtures for Opus tests."""

import json
import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from opus.core.package import Package
from opus.core.project import Project
from opus.host.base import IOInterface


class ScriptedIO(IOInterface):
    """IO double that records output and answers prompts from a script."""

    def __init__(self, answers: list[str] | None = None):
        self.answers = list(answers or [])
        self.lines: list[str] = []
        self.questions: list[str] = []
        self.diffs: list[str] = []

    def write(self, message: str = "") -> None:
        self.lines.append(message)

    def ask(self, question: str, default: str) -> str:
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {question}")
        return self.answers.pop(0)

    def write_diff(self, diff: str) -> None:
        self.diffs.append(diff)

    @property
    def output(self) -> str:
        return "\n".join(self.lines)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="opus_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def temp_project(temp_dir: Path) -> Path:
    """Create a temporary project directory."""
    project_dir = temp_dir / "test-project"
    project_dir.mkdir()
    return project_dir


@pytest.fixture
def write_manifest(temp_project: Path) -> Callable[..., Project]:
    """Factory writing opus.yaml for the temporary project and loading it."""

    def _write(integrity: str = "medium", **options: Any) -> Project:
        lines = [
            "name: acme/site",
            "opus:",
            "  enabled: true",
            "  options:",
            f"    integrity: {integrity}",
        ]
        for key, value in options.items():
            rendered = json.dumps(value)
            lines.append(f"    {key.replace('_', '-')}: {rendered}")
        (temp_project / "opus.yaml").write_text("\n".join(lines) + "\n")
        return Project.load(temp_project)

    return _write


@pytest.fixture
def project(write_manifest: Callable[..., Project]) -> Project:
    """Project at medium integrity with framework acme/site."""
    return write_manifest()


@pytest.fixture
def make_package(temp_project: Path) -> Callable[..., Package]:
    """Factory creating an installed package under vendor/.

    Args (of the returned callable):
        name: Package name; its installation root is vendor/<name>
        files: Package-relative path -> text content
        opus: The package's extra.opus section
        require: Dependency name -> constraint
        version: Package version
        root: Override the installation root
    """

    def _make(
        name: str,
        files: dict[str, str] | None = None,
        opus: dict[str, Any] | None = None,
        require: dict[str, str] | None = None,
        version: str = "1.0.0",
        root: Path | None = None,
    ) -> Package:
        package_root = root or temp_project / "vendor" / name
        package_root.mkdir(parents=True, exist_ok=True)

        manifest: dict[str, Any] = {
            "name": name,
            "version": version,
            "require": require or {},
        }
        if opus is not None:
            manifest["extra"] = {"opus": opus}
        (package_root / "package.json").write_text(json.dumps(manifest, indent=2))

        for relative, content in (files or {}).items():
            path = package_root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

        return Package.load(package_root)

    return _make


@pytest.fixture
def make_io() -> Callable[..., ScriptedIO]:
    """Factory for IO doubles answering prompts from a list."""
    return ScriptedIO
