"""Configuration file parsing utilities."""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from opus.config.schemas import PackageManifest, ProjectManifest
from opus.errors import ConfigurationError

PROJECT_MANIFEST = "opus.yaml"
PACKAGE_MANIFEST = "package.json"


def load_json(path: Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed JSON as a dictionary

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigurationError(f"File not found: {path}", path=path)

    try:
        with open(path, encoding="utf-8") as f:
            result = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}", path=path) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}", path=path) from e

    if not isinstance(result, dict):
        raise ConfigurationError(f"JSON file must contain an object: {path}", path=path)
    return result


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigurationError(f"File not found: {path}", path=path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}", path=path) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}", path=path) from e

    if result is None:
        return {}
    if not isinstance(result, dict):
        raise ConfigurationError(f"YAML file must contain a mapping: {path}", path=path)
    return result


def save_yaml(path: Path, data: dict[str, Any]) -> None:
    """Save data to a YAML file.

    Args:
        path: Path to write to
        data: Data to serialize
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def load_project_manifest(project_root: Path) -> ProjectManifest:
    """Load the project manifest from opus.yaml.

    Args:
        project_root: Path to the project root directory

    Returns:
        Parsed ProjectManifest

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    manifest_path = project_root / PROJECT_MANIFEST
    data = load_yaml(manifest_path)

    try:
        return ProjectManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid project manifest: {e}", path=manifest_path) from e


def load_package_manifest(package_root: Path) -> PackageManifest:
    """Load an installed package's manifest from package.json.

    Args:
        package_root: Path to the package's installation root

    Returns:
        Parsed PackageManifest

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    manifest_path = package_root / PACKAGE_MANIFEST
    data = load_json(manifest_path)

    try:
        return PackageManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid package manifest: {e}", path=manifest_path) from e


def find_project_root(start_path: Path | None = None) -> Path | None:
    """Find the project root by looking for opus.yaml.

    Args:
        start_path: Directory to start searching from (defaults to cwd)

    Returns:
        Path to project root, or None if not found
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()
    while current != current.parent:
        if (current / PROJECT_MANIFEST).exists():
            return current
        current = current.parent

    # Check root
    if (current / PROJECT_MANIFEST).exists():
        return current

    return None
