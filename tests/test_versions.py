"""
Tests for app version parsing and comparison.
"""

import pytest

from appconsole.core.engine.errors import ClassificationError
from appconsole.core.engine.versions import compare_versions, parse_version


class TestParseVersion:
    def test_four_components(self):
        assert parse_version("1.2.3.4") == (1, 2, 3, 4)

    def test_missing_components_are_zero(self):
        assert parse_version("1.2") == (1, 2, 0, 0)
        assert parse_version("1.2.3") == (1, 2, 3, 0)

    def test_surrounding_whitespace_ignored(self):
        assert parse_version(" 24.0.1.0 ") == (24, 0, 1, 0)

    @pytest.mark.parametrize(
        "text",
        ["", "1", "1.2.3.4.5", "1.x", "1..2", "-1.0", "v1.0", "1.0-beta", "1.²"],
    )
    def test_malformed(self, text: str):
        with pytest.raises(ClassificationError):
            parse_version(text)

    def test_non_string_rejected(self):
        with pytest.raises(ClassificationError):
            parse_version(None)  # type: ignore[arg-type]


class TestCompareVersions:
    def test_numeric_not_lexicographic(self):
        """10.0 must sort above 9.0."""
        assert compare_versions("10.0.0.0", "9.0.0.0") == 1
        assert compare_versions("1.10.0.0", "1.9.0.0") == 1

    def test_equal_with_padding(self):
        assert compare_versions("1.0", "1.0.0.0") == 0

    def test_lower(self):
        assert compare_versions("1.0.0.1", "1.0.1.0") == -1

    def test_revision_breaks_tie(self):
        assert compare_versions("2.0.0.2", "2.0.0.1") == 1
