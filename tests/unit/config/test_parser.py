"""Tests for opus.config.parser module."""

import json
from pathlib import Path

import pytest
import yaml

from opus.config.parser import (
    find_project_root,
    load_json,
    load_package_manifest,
    load_project_manifest,
    load_yaml,
    save_yaml,
)
from opus.errors import ConfigurationError


class TestLoadJson:
    """Tests for load_json function."""

    def test_loads_valid_json(self, temp_dir: Path):
        """Loads valid JSON file."""
        file_path = temp_dir / "test.json"
        file_path.write_text('{"key": "value"}')

        assert load_json(file_path) == {"key": "value"}

    def test_raises_for_missing_file(self, temp_dir: Path):
        with pytest.raises(ConfigurationError, match="File not found"):
            load_json(temp_dir / "nonexistent.json")

    def test_raises_for_invalid_json(self, temp_dir: Path):
        file_path = temp_dir / "invalid.json"
        file_path.write_text("not valid json {")

        with pytest.raises(ConfigurationError, match="Invalid JSON") as exc_info:
            load_json(file_path)

        assert exc_info.value.path == file_path

    def test_raises_for_non_object(self, temp_dir: Path):
        file_path = temp_dir / "list.json"
        file_path.write_text("[1, 2]")

        with pytest.raises(ConfigurationError, match="must contain an object"):
            load_json(file_path)


class TestYaml:
    """Tests for YAML helpers."""

    def test_empty_file_is_empty_mapping(self, temp_dir: Path):
        file_path = temp_dir / "empty.yaml"
        file_path.write_text("")

        assert load_yaml(file_path) == {}

    def test_raises_for_invalid_yaml(self, temp_dir: Path):
        file_path = temp_dir / "bad.yaml"
        file_path.write_text("key: [unclosed")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml(file_path)

    def test_raises_for_non_mapping(self, temp_dir: Path):
        file_path = temp_dir / "list.yaml"
        file_path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_yaml(file_path)

    def test_save_preserves_key_order(self, temp_dir: Path):
        file_path = temp_dir / "out.yaml"

        save_yaml(file_path, {"name": "x", "opus": {"enabled": True}})

        assert file_path.read_text().startswith("name: x\n")
        assert yaml.safe_load(file_path.read_text()) == {"name": "x", "opus": {"enabled": True}}


class TestManifests:
    """Tests for manifest loaders."""

    def test_load_project_manifest(self, temp_dir: Path):
        (temp_dir / "opus.yaml").write_text(
            "name: acme/site\nopus:\n  options:\n    external-mapping: true\n"
        )

        manifest = load_project_manifest(temp_dir)

        assert manifest.name == "acme/site"
        assert manifest.opus.options.external_mapping is True

    def test_invalid_project_manifest(self, temp_dir: Path):
        (temp_dir / "opus.yaml").write_text("vendor_dir: vendor\n")

        with pytest.raises(ConfigurationError, match="Invalid project manifest"):
            load_project_manifest(temp_dir)

    def test_load_package_manifest(self, temp_dir: Path):
        (temp_dir / "package.json").write_text(
            json.dumps({"name": "acme/widgets", "require": {"acme/core": "^1.0"}})
        )

        manifest = load_package_manifest(temp_dir)

        assert manifest.name == "acme/widgets"
        assert manifest.require == {"acme/core": "^1.0"}

    def test_invalid_package_manifest(self, temp_dir: Path):
        (temp_dir / "package.json").write_text(json.dumps({"version": "1.0"}))

        with pytest.raises(ConfigurationError, match="Invalid package manifest"):
            load_package_manifest(temp_dir)


class TestFindProjectRoot:
    """Tests for find_project_root function."""

    def test_finds_in_parent(self, temp_dir: Path):
        (temp_dir / "opus.yaml").write_text("name: x\n")
        nested = temp_dir / "a" / "b"
        nested.mkdir(parents=True)

        assert find_project_root(nested) == temp_dir.resolve()

    def test_returns_none_when_absent(self, temp_dir: Path):
        nested = temp_dir / "a"
        nested.mkdir()

        assert find_project_root(nested) is None
