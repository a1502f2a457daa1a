import pytest

from api_collection_sync.parser.examples import as_text, default_for_type, synthesize


class TestDefaultForType:
    @pytest.mark.parametrize(
        "type_name, expected",
        [("string", ""), ("integer", 0), ("number", 0), ("boolean", False), ("array", []), ("object", {}), (None, "")],
    )
    def test_defaults(self, type_name, expected):
        assert default_for_type(type_name) == expected


class TestSynthesize:
    def test_example_wins(self):
        assert synthesize({"type": "integer", "example": 7}) == 7

    def test_example_ignored_when_not_preferred(self):
        assert synthesize({"type": "integer", "example": 7}, prefer_example=False) == 0

    def test_object_properties(self):
        schema = {
            "type": "object",
            "properties": {"name": {"type": "string", "example": "Rex"}, "tags": {"type": "array"}},
        }
        assert synthesize(schema) == {"name": "Rex", "tags": []}

    def test_untyped_schema_with_properties_is_object(self):
        assert synthesize({"properties": {"ok": {"type": "boolean"}}}) == {"ok": False}

    def test_all_of_merges_branches(self):
        schema = {
            "allOf": [
                {"type": "object", "properties": {"a": {"type": "integer"}}},
                {"type": "object", "properties": {"b": {"type": "string"}}},
            ]
        }
        assert synthesize(schema) == {"a": 0, "b": ""}

    def test_any_of_takes_first_branch(self):
        assert synthesize({"anyOf": [{"type": "boolean"}, {"type": "string"}]}) is False

    def test_truncated_ref_is_empty_string(self):
        assert synthesize({"type": "object", "properties": {"child": None}}) == {"child": ""}


class TestAsText:
    def test_strings_pass_through(self):
        assert as_text("abc") == "abc"

    def test_other_values_are_json(self):
        assert as_text(0) == "0"
        assert as_text(False) == "false"
        assert as_text({"a": 1}) == '{"a": 1}'
