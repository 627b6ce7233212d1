"""
Tests for token path resolution.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from protected_config.token_path import (
    KEY_DELIMITER,
    fold_key,
    key_segments,
    parse_token_path,
    select_token,
    to_token_path,
)


class TestToTokenPath:
    """Tests for to_token_path()."""

    def test_delimiter(self):
        assert KEY_DELIMITER == ":"

    @pytest.mark.parametrize("key,expected", [
        ("DBConnection", "DBConnection"),
        ("SomeApi:Secret", "SomeApi.Secret"),
        ("Servers:0:Password", "Servers[0].Password"),
        ("Matrix:1:2", "Matrix[1][2]"),
        ("A:B:C:D", "A.B.C.D"),
        ("List:10", "List[10]"),
    ])
    def test_conversion(self, key, expected):
        assert to_token_path(key) == expected

    def test_leading_numeric_segment(self):
        """A digit-only first segment is still emitted as an index."""
        assert to_token_path("0:Name") == "[0].Name"

    def test_mixed_segment_is_property(self):
        """Segments that are not entirely digits are properties."""
        assert to_token_path("Api:v2:Key") == "Api.v2.Key"

    def test_non_ascii_digits_are_properties(self):
        """Superscript digits do not count as an index."""
        assert to_token_path("A:²") == "A.²"


class TestParseTokenPath:
    """Tests for parse_token_path() and key_segments()."""

    def test_parse(self):
        assert parse_token_path("Servers[0].Password") == ["Servers", 0, "Password"]

    def test_parse_nested_indices(self):
        assert parse_token_path("Matrix[1][2]") == ["Matrix", 1, 2]

    def test_parse_inverts_to_token_path(self):
        for key in ["A", "A:B", "A:0:B", "A:0:1:C"]:
            assert parse_token_path(to_token_path(key)) == key_segments(key)

    def test_unterminated_index(self):
        with pytest.raises(ValueError):
            parse_token_path("Servers[0")

    def test_invalid_index(self):
        with pytest.raises(ValueError):
            parse_token_path("Servers[x]")

    def test_key_segments(self):
        assert key_segments("Servers:0:Password") == ["Servers", 0, "Password"]


class TestSelectToken:
    """Tests for select_token()."""

    @pytest.fixture
    def document(self):
        return {
            "SomeApi": {"Secret": "s"},
            "Servers": [{"Password": "p0"}, {"Password": "p1"}],
            "Matrix": [["a", "b"], ["c", "d"]],
            "Years": {"2020": "old"},
        }

    def test_select_property(self, document):
        container, accessor = select_token(document, "SomeApi:Secret")
        assert container[accessor] == "s"

    def test_select_array_element(self, document):
        container, accessor = select_token(document, "Servers:1:Password")
        assert container[accessor] == "p1"

    def test_select_nested_arrays(self, document):
        container, accessor = select_token(document, "Matrix:1:0")
        assert container[accessor] == "c"

    def test_overwrite_through_accessor(self, document):
        container, accessor = select_token(document, "Servers:0:Password")
        container[accessor] = "new"
        assert document["Servers"][0]["Password"] == "new"

    def test_numeric_property_name(self, document):
        """A numeric segment on an object is looked up as a property name."""
        container, accessor = select_token(document, "Years:2020")
        assert accessor == "2020"
        assert container[accessor] == "old"

    def test_accepts_segments(self, document):
        container, accessor = select_token(document, ["Servers", 0, "Password"])
        assert container[accessor] == "p0"

    def test_missing_property(self, document):
        with pytest.raises(LookupError):
            select_token(document, "SomeApi:Missing")

    def test_index_out_of_range(self, document):
        with pytest.raises(LookupError):
            select_token(document, "Servers:5:Password")

    def test_property_on_array(self, document):
        with pytest.raises(LookupError):
            select_token(document, "Servers:Password")

    def test_descend_into_scalar(self, document):
        with pytest.raises(LookupError):
            select_token(document, "SomeApi:Secret:Deeper")

    def test_empty_segments(self, document):
        with pytest.raises(LookupError):
            select_token(document, [])

    def test_leading_zeros_kept_for_properties(self):
        """Digit-only property names are matched on their text."""
        document = {"Codes": {"007": "secret", "7": "other"}}
        container, accessor = select_token(document, "Codes:007")
        assert accessor == "007"
        assert container[accessor] == "secret"

    def test_digit_text_indexes_list(self):
        container, accessor = select_token({"Servers": ["a", "b"]}, ["Servers", "1"])
        assert accessor == 1
        assert container[accessor] == "b"


class TestFoldKey:
    """Tests for fold_key()."""

    def test_ascii_case_ignored(self):
        assert fold_key("SomeApi:Secret") == fold_key("SOMEAPI:secret")

    def test_non_ascii_letters_folded(self):
        assert fold_key("Größe") == fold_key("GRößE")

    def test_sharp_s_not_expanded(self):
        """Only one-to-one case mappings are applied."""
        assert fold_key("Straße") != fold_key("STRASSE")
        assert len(fold_key("Straße")) == len("Straße")
