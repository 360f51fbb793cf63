"""Tests for the declarative schema validator."""

from plotpilot.core.schema import (
    array_field,
    boolean_field,
    enum_field,
    number_field,
    object_schema,
    record_field,
    string_field,
    to_json_schema,
    validate,
)

LOOKUP = object_schema(
    {
        "identifier": string_field("ID or name"),
        "identifierType": enum_field(["id", "name"]),
        "limit": number_field(required=False),
        "verbose": boolean_field(required=False),
    }
)


class TestValidate:
    def test_valid_value_passes_through(self):
        result = validate(LOOKUP, {"identifier": "prop1", "identifierType": "id", "limit": 3})

        assert result.ok
        assert result.value == {"identifier": "prop1", "identifierType": "id", "limit": 3}
        assert result.errors == []

    def test_missing_required_field_is_named(self):
        result = validate(LOOKUP, {"identifierType": "id"})

        assert not result.ok
        assert result.errors == ["identifier: missing"]

    def test_wrong_kind_names_expected_and_actual(self):
        result = validate(LOOKUP, {"identifier": 42, "identifierType": "id"})

        assert not result.ok
        assert result.errors == ["identifier: expected string, got number"]

    def test_enum_outside_options_lists_valid_options(self):
        result = validate(LOOKUP, {"identifier": "x", "identifierType": "slug"})

        assert not result.ok
        assert "valid options: id, name" in result.errors[0]
        assert result.errors[0].startswith("identifierType")

    def test_unknown_fields_are_ignored_and_dropped(self):
        result = validate(LOOKUP, {"identifier": "x", "identifierType": "name", "userId": "u1"})

        assert result.ok
        assert "userId" not in result.value

    def test_numbers_accept_int_and_float_but_not_bool(self):
        assert validate(LOOKUP, {"identifier": "x", "identifierType": "id", "limit": 2}).ok
        assert validate(LOOKUP, {"identifier": "x", "identifierType": "id", "limit": 2.5}).ok

        result = validate(LOOKUP, {"identifier": "x", "identifierType": "id", "limit": True})
        assert result.errors == ["limit: expected number, got boolean"]

    def test_empty_string_allowed_unless_min_length(self):
        plain = object_schema({"note": string_field()})
        strict = object_schema({"note": string_field(min_length=1)})

        assert validate(plain, {"note": ""}).ok
        result = validate(strict, {"note": ""})
        assert not result.ok
        assert "minimum length 1" in result.errors[0]

    def test_null_for_required_string_is_a_kind_error(self):
        result = validate(LOOKUP, {"identifier": None, "identifierType": "id"})

        assert result.errors == ["identifier: expected string, got null"]

    def test_null_for_optional_field_counts_as_absent(self):
        result = validate(LOOKUP, {"identifier": "x", "identifierType": "id", "verbose": None})

        assert result.ok
        assert "verbose" not in result.value

    def test_nullable_field_keeps_null(self):
        schema = object_schema({"property": record_field(nullable=True), "message": string_field()})

        result = validate(schema, {"property": None, "message": "not found"})

        assert result.ok
        assert result.value == {"property": None, "message": "not found"}

    def test_nested_array_errors_carry_a_path(self):
        schema = object_schema(
            {"properties": array_field(object_schema({"id": string_field(), "name": string_field()}))}
        )

        result = validate(schema, {"properties": [{"id": "a", "name": "A"}, {"id": 7, "name": "B"}]})

        assert not result.ok
        assert result.errors == ["properties[1].id: expected string, got number"]

    def test_non_object_value_is_rejected(self):
        result = validate(LOOKUP, ["identifier"])

        assert not result.ok
        assert result.errors == ["expected object, got array"]

    def test_collects_every_error(self):
        result = validate(LOOKUP, {"identifierType": 1})

        assert len(result.errors) == 2


class TestJsonSchema:
    def test_object_schema_rendering(self):
        rendered = to_json_schema(LOOKUP)

        assert rendered["type"] == "object"
        assert rendered["required"] == ["identifier", "identifierType"]
        assert rendered["properties"]["identifierType"] == {"type": "string", "enum": ["id", "name"]}
        assert rendered["properties"]["identifier"]["description"] == "ID or name"

    def test_nullable_record_rendering(self):
        rendered = to_json_schema(record_field("full record", nullable=True))

        assert rendered == {"type": ["object", "null"], "description": "full record"}
