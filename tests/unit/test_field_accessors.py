"""
Unit tests for tolerant feed field accessors.
"""

from parsers.field_accessors import (
    first_of,
    as_list,
    child,
    attribute,
    extract_string_value,
    record_id,
    category_ref,
    brand_ref,
    extract_by_lang,
    extract_images,
    extract_parameter,
)


# ===================
# BASIC ACCESSOR TESTS
# ===================

class TestBasicAccessors:
    """Tests for first_of(), as_list(), child() and attribute()."""

    def test_first_of_skips_none_and_blank(self):
        """Skips None and whitespace-only strings."""
        assert first_of(None, "  ", "value", "other") == "value"

    def test_first_of_keeps_zero(self):
        """Zero is a real value."""
        assert first_of(None, 0) == 0

    def test_as_list(self):
        """Wraps scalars, keeps lists, empties None."""
        assert as_list(None) == []
        assert as_list({"a": 1}) == [{"a": 1}]
        assert as_list([1, 2]) == [1, 2]

    def test_child_walks_path(self):
        """Returns None as soon as a step is missing."""
        node = {"a": {"b": {"c": "x"}}}
        assert child(node, "a", "b", "c") == "x"
        assert child(node, "a", "x", "c") is None
        assert child("text", "a") is None

    def test_attribute_checks_all_shapes(self):
        """Reads @_name, @attributes.name or a child element."""
        assert attribute({"@_id": "1"}, "id") == "1"
        assert attribute({"@attributes": {"id": "2"}}, "id") == "2"
        assert attribute({"id": "3"}, "id") == "3"

    def test_extract_string_value(self):
        """Reads plain strings and #text / @text / name nodes."""
        assert extract_string_value("  Drill  ") == "Drill"
        assert extract_string_value({"#text": "Drill"}) == "Drill"
        assert extract_string_value({"@text": "Drill"}) == "Drill"
        assert extract_string_value({"name": "Drill"}) == "Drill"
        assert extract_string_value({"other": "x"}) is None
        assert extract_string_value(None) is None


# ===================
# REFERENCE TESTS
# ===================

class TestReferences:
    """Tests for record_id(), category_ref() and brand_ref()."""

    def test_record_id_from_attribute_or_child(self):
        assert record_id({"@_id": "101"}) == "101"
        assert record_id({"id": 202}) == "202"
        assert record_id({}) is None

    def test_category_ref_attribute_form(self):
        record = {"category": {"@_id": "10", "@_name": "Drills"}}

        assert category_ref(record) == ("10", "Drills")

    def test_category_ref_nested_name(self):
        record = {"category": {"@_id": "10", "name": {"#text": "Drills"}}}

        assert category_ref(record) == ("10", "Drills")

    def test_serialized_object_name_rejected(self):
        """A '{...}' name is a leaked object, not a real name."""
        record = {"producer": {"@_id": "5", "@_name": "{object Object}"}}

        assert brand_ref(record) == ("5", None)

    def test_missing_reference(self):
        assert brand_ref({}) == (None, None)


# ===================
# LANGUAGE TESTS
# ===================

class TestExtractByLang:
    """Tests for extract_by_lang()."""

    def test_exact_tag_match_among_variants(self):
        """Picks the variant tagged with the wanted language."""
        names = [
            {"@_xml:lang": "pol", "#text": "Wiertarka"},
            {"@_xml:lang": "eng", "#text": "Drill"},
        ]

        assert extract_by_lang(names, "eng") == "Drill"
        assert extract_by_lang(names, "pol") == "Wiertarka"

    def test_short_code_alias(self):
        """'en' and 'eng' match each other."""
        names = [
            {"@_xml:lang": "pol", "#text": "Wiertarka"},
            {"@_xml:lang": "en", "#text": "Drill"},
        ]

        assert extract_by_lang(names, "eng") == "Drill"

    def test_falls_back_to_first_variant(self):
        """Without a matching tag the first variant wins."""
        names = [
            {"@_xml:lang": "pol", "#text": "Wiertarka"},
            {"@_xml:lang": "hun", "#text": "Fúró"},
        ]

        assert extract_by_lang(names, "eng") == "Wiertarka"

    def test_plain_string(self):
        assert extract_by_lang("Drill", "eng") == "Drill"

    def test_empty(self):
        assert extract_by_lang(None, "eng") is None
        assert extract_by_lang([], "eng") is None


# ===================
# IMAGE TESTS
# ===================

class TestExtractImages:
    """Tests for extract_images()."""

    def test_prefers_namespaced_originals_sorted_by_priority(self):
        """Uses the originals group and orders by priority."""
        images = {
            "large": {"image": [{"@_url": "https://img.test/large.jpg"}]},
            "iaiext:originals": {"image": [
                {"@_url": "https://img.test/2.jpg", "@_iaiext:priority": "2"},
                {"@_url": "https://img.test/1.jpg", "@_iaiext:priority": "1"},
            ]},
        }

        assert extract_images(images) == ["https://img.test/1.jpg", "https://img.test/2.jpg"]

    def test_plain_originals_first(self):
        images = {
            "originals": {"image": {"@_url": "https://img.test/o.jpg"}},
            "large": {"image": {"@_url": "https://img.test/l.jpg"}},
        }

        assert extract_images(images) == ["https://img.test/o.jpg"]

    def test_falls_back_to_large(self):
        images = {"large": {"image": {"@_url": "https://img.test/l.jpg"}}}

        assert extract_images(images) == ["https://img.test/l.jpg"]

    def test_no_images(self):
        assert extract_images(None) == []
        assert extract_images({}) == []


# ===================
# PARAMETER TESTS
# ===================

class TestExtractParameter:
    """Tests for extract_parameter()."""

    PARAMETERS = [
        {"@_name": "Net weight", "value": {"@_name": "1,5 kg"}},
        {"@_name": "Material", "value": {"@_name": "Steel"}},
        {"@_name": "HS", "value": [{"@_name": "8467"}, {"@_name": "ignored"}]},
    ]

    def test_case_insensitive_match(self):
        assert extract_parameter(self.PARAMETERS, "material") == "Steel"

    def test_wanted_name_contained_in_parameter(self):
        """'weight' matches 'Net weight'."""
        assert extract_parameter(self.PARAMETERS, "weight") == "1,5 kg"

    def test_parameter_name_contained_in_wanted(self):
        """'HS' matches a lookup for 'HS Code'."""
        assert extract_parameter(self.PARAMETERS, "HS Code") == "8467"

    def test_no_match(self):
        assert extract_parameter(self.PARAMETERS, "Colour") is None
        assert extract_parameter([], "Colour") is None
