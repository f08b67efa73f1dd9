import pytest

from pollboard.errors import ValidationError
from pollboard.events.fields import (
    FieldSpec, FieldType, FieldValue, dump_schema, dump_values, parse_schema, validate_field_values,
)

SCHEMA = [FieldSpec("dietary", FieldType.STRING), FieldSpec("guests", FieldType.INTEGER)]


def test_parse_schema_from_list_and_json():
    raw = [{"name": "dietary", "type": "string"}, {"name": "guests", "type": "integer"}]

    assert parse_schema(raw) == SCHEMA
    assert parse_schema('[{"name": "dietary", "type": "string"}, {"name": "guests", "type": "integer"}]') == SCHEMA
    assert dump_schema(parse_schema(raw)) == raw


@pytest.mark.parametrize("raw", [None, "", "   ", []])
def test_empty_schema(raw):
    assert parse_schema(raw) == []


def test_type_defaults_to_string():
    assert parse_schema([{"name": "notes"}]) == [FieldSpec("notes", FieldType.STRING)]


@pytest.mark.parametrize("raw", [
    "{not json",
    {"name": "dietary"},
    ["dietary"],
    [{"name": ""}],
    [{"name": "x", "type": "date"}],
    [{"name": "x"}, {"name": "x", "type": "integer"}],
])
def test_invalid_schemas(raw):
    with pytest.raises(ValidationError):
        parse_schema(raw)


def test_values_are_tagged_by_schema_type():
    values = validate_field_values(SCHEMA, {"dietary": "vegan", "guests": "2"})

    assert values == {
        "dietary": FieldValue(FieldType.STRING, "vegan"),
        "guests": FieldValue(FieldType.INTEGER, 2),
    }
    assert dump_values(values) == {"dietary": "vegan", "guests": 2}


def test_values_may_omit_fields():
    assert dump_values(validate_field_values(SCHEMA, {"guests": 0})) == {"guests": 0}
    assert validate_field_values(SCHEMA, None) == {}
    assert validate_field_values(SCHEMA, '{"dietary": "none"}')["dietary"].value == "none"


@pytest.mark.parametrize("values", [
    {"allergies": "nuts"},
    {"guests": "two"},
    {"guests": 1.5},
    {"guests": True},
    {"dietary": ["vegan"]},
    ["dietary"],
    "{broken",
])
def test_invalid_values(values):
    with pytest.raises(ValidationError):
        validate_field_values(SCHEMA, values)
