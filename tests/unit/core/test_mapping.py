"""Tests for opus.core.mapping module."""

import pytest

from opus.core.mapping import PackageMap, build_package_map, wildcard_pattern
from opus.errors import ConfigurationError

FRAMEWORK = "acme/site"


class TestPackageMap:
    """Tests for PackageMap container."""

    def test_add_and_get(self):
        package_map = PackageMap()
        package_map.add("acme/a", "x.js", "public/")

        assert package_map.get("acme/a") == {"x.js": "public/"}
        assert package_map.get("acme/b") == {}
        assert "acme/a" in package_map
        assert len(package_map) == 1

    def test_extend_merges(self):
        package_map = PackageMap()
        package_map.extend("acme/a", {"x.js": "public/"})
        package_map.extend("acme/a", {"y.js": "public/"})

        assert package_map.get("acme/a") == {"x.js": "public/", "y.js": "public/"}
        assert package_map.owners == ["acme/a"]


class TestWildcardPattern:
    """Tests for wildcard_pattern function."""

    def test_star_matches_anything(self):
        pattern = wildcard_pattern("acme/theme-*")

        assert pattern.fullmatch("acme/theme-dark")
        assert pattern.fullmatch("acme/theme-")
        assert not pattern.fullmatch("acme/themes")

    def test_literal_characters_are_escaped(self):
        pattern = wildcard_pattern("acme/a.b")

        assert pattern.fullmatch("acme/a.b")
        assert not pattern.fullmatch("acme/aXb")

    def test_exact_name_is_anchored(self):
        pattern = wildcard_pattern("acme/core")

        assert not pattern.fullmatch("acme/core-extra")


class TestBuildPackageMap:
    """Tests for build_package_map function."""

    def test_flat_mapping_belongs_to_package(self, make_package):
        package = make_package(
            "acme/widgets",
            opus={FRAMEWORK: {"assets/widget.js": "public/js/", "assets/widget.css": "public/css/"}},
        )

        package_map = build_package_map(package, FRAMEWORK)

        assert package_map.entries == {
            "acme/widgets": {
                "assets/widget.js": "public/js/",
                "assets/widget.css": "public/css/",
            }
        }

    def test_no_mapping_for_framework(self, make_package):
        package = make_package("acme/widgets", opus={"other": {"a": "b"}})

        assert len(build_package_map(package, FRAMEWORK)) == 0

    def test_own_name_nested_mapping(self, make_package):
        """A nested mapping keyed by the package's own name needs no external mapping."""
        package = make_package("acme/widgets", opus={FRAMEWORK: {"acme/widgets": {"a.js": "public/"}}})

        package_map = build_package_map(package, FRAMEWORK)

        assert package_map.get("acme/widgets") == {"a.js": "public/"}

    def test_external_mapping_disabled(self, make_package):
        package = make_package(
            "acme/app",
            opus={FRAMEWORK: {"acme/theme": {"css/": "public/css/"}}},
            require={"acme/theme": "*"},
        )

        with pytest.raises(ConfigurationError, match="Cannot perform external mapping for acme/theme, disabled"):
            build_package_map(package, FRAMEWORK)

    def test_external_mapping_for_dependencies(self, make_package):
        """Wildcard keys extend every matching dependency."""
        package = make_package(
            "acme/app",
            opus={FRAMEWORK: {"acme/theme-*": {"css/": "public/css/"}}},
            require={"acme/theme-dark": "^1.0", "acme/theme-light": "^1.0", "acme/core": "^2.0"},
        )

        package_map = build_package_map(package, FRAMEWORK, external_mapping=True)

        assert package_map.get("acme/theme-dark") == {"css/": "public/css/"}
        assert package_map.get("acme/theme-light") == {"css/": "public/css/"}
        assert "acme/core" not in package_map

    def test_external_mapping_mixed_with_own_files(self, make_package):
        package = make_package(
            "acme/app",
            opus={
                FRAMEWORK: {
                    "app.js": "public/",
                    "acme/theme": {"css/": "public/css/"},
                }
            },
            require={"acme/theme": "*"},
        )

        package_map = build_package_map(package, FRAMEWORK, external_mapping=True)

        assert package_map.get("acme/app") == {"app.js": "public/"}
        assert package_map.get("acme/theme") == {"css/": "public/css/"}

    def test_invalid_element_type(self, make_package):
        package = make_package("acme/widgets", opus={FRAMEWORK: {"a.js": 5}})

        with pytest.raises(ConfigurationError, match="Invalid element a.js of unexpected type int"):
            build_package_map(package, FRAMEWORK)

    def test_invalid_framework_value(self, make_package):
        package = make_package("acme/widgets", opus={FRAMEWORK: ["a.js"]})

        with pytest.raises(ConfigurationError, match="expected an object"):
            build_package_map(package, FRAMEWORK)

    def test_invalid_nested_destination(self, make_package):
        package = make_package("acme/widgets", opus={FRAMEWORK: {"acme/widgets": {"a.js": ["x"]}}})

        with pytest.raises(ConfigurationError, match="Invalid destination"):
            build_package_map(package, FRAMEWORK)
