"""Tests for opus.utils.paths module."""

from pathlib import Path

from opus.utils.paths import (
    depth,
    ends_with_separator,
    from_key,
    ltrim_separators,
    normalize_key,
    project_relative,
    rtrim_separators,
    to_posix,
    trim_separators,
)


class TestSeparators:
    """Tests for separator trimming helpers."""

    def test_detects_trailing_separator(self):
        assert ends_with_separator("public/js/")
        assert ends_with_separator("public\\js\\")
        assert not ends_with_separator("public/js")
        assert not ends_with_separator("")

    def test_trims_either_style(self):
        assert ltrim_separators("//public/js") == "public/js"
        assert rtrim_separators("public/js\\/") == "public/js"
        assert trim_separators("\\public\\js\\") == "public\\js"

    def test_to_posix_converts_backslashes(self):
        assert to_posix("public\\js\\app.js") == "public/js/app.js"


class TestNormalizeKey:
    """Tests for normalize_key function."""

    def test_normalizes_mixed_separators(self):
        """Mixed separators collapse to a clean forward-slash key."""
        assert normalize_key("/public\\css/site.css/") == "public/css/site.css"

    def test_keeps_plain_key(self):
        assert normalize_key("public/css") == "public/css"


class TestProjectRelative:
    """Tests for project_relative function."""

    def test_relative_path(self, temp_dir: Path):
        assert project_relative(temp_dir / "public" / "app.js", temp_dir) == "public/app.js"

    def test_root_is_empty_key(self, temp_dir: Path):
        assert project_relative(temp_dir, temp_dir) == ""

    def test_outside_root_is_none(self, temp_dir: Path):
        assert project_relative(temp_dir.parent / "elsewhere", temp_dir) is None

    def test_from_key_round_trip(self, temp_dir: Path):
        path = from_key("public/app.js", temp_dir)

        assert path == temp_dir / "public" / "app.js"
        assert project_relative(path, temp_dir) == "public/app.js"


class TestDepth:
    """Tests for depth function."""

    def test_counts_components(self):
        assert depth("public") == 1
        assert depth("public/js/app.js") == 3
        assert depth("") == 0
