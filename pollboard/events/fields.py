# pollboard/events/fields.py

import json
from dataclasses import dataclass
from enum import Enum

from pollboard.errors import ValidationError

MAX_FIELDS = 50
MAX_FIELD_NAME_LENGTH = 100
MAX_STRING_VALUE_LENGTH = 1000


class FieldType(Enum):
    STRING = "string"
    INTEGER = "integer"

    def coerce(self, name, raw):
        """Convert a submitted value to this type or raise ValidationError."""
        if self is FieldType.STRING:
            if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
                raise ValidationError(f"Field '{name}' must be a string")
            value = str(raw)
            if len(value) > MAX_STRING_VALUE_LENGTH:
                raise ValidationError(f"Field '{name}' is too long")
            return value
        # Forms submit integers as text
        if isinstance(raw, bool):
            raise ValidationError(f"Field '{name}' must be an integer")
        if isinstance(raw, int):
            return raw
        if isinstance(raw, str):
            try:
                return int(raw.strip())
            except ValueError:
                pass
        raise ValidationError(f"Field '{name}' must be an integer")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: FieldType

    def to_dict(self):
        return {'name': self.name, 'type': self.type.value}


@dataclass(frozen=True)
class FieldValue:
    type: FieldType
    value: object


def _load_json(raw, what):
    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError:
            raise ValidationError(f"{what} is not valid JSON")
    return raw


def parse_schema(raw):
    """Parse a custom field schema (list of {name, type} or its JSON text)."""
    raw = _load_json(raw, "Custom field schema")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("Custom field schema must be a list")
    if len(raw) > MAX_FIELDS:
        raise ValidationError("Too many custom fields")

    specs = []
    seen = set()
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each custom field must be an object with name and type")
        name = item.get('name')
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Custom field name is required")
        name = name.strip()
        if len(name) > MAX_FIELD_NAME_LENGTH:
            raise ValidationError(f"Custom field name too long: {name[:20]}...")
        if name in seen:
            raise ValidationError(f"Duplicate custom field: {name}")
        try:
            field_type = FieldType(str(item.get('type', FieldType.STRING.value)).lower())
        except ValueError:
            raise ValidationError(f"Unknown type for custom field '{name}': {item.get('type')}")
        seen.add(name)
        specs.append(FieldSpec(name=name, type=field_type))
    return specs


def dump_schema(specs):
    return [spec.to_dict() for spec in specs]


def validate_field_values(specs, raw_values):
    """Check submitted values against an event schema.

    Keys must be declared in the schema; missing fields are allowed.
    Returns a mapping of field name to FieldValue.
    """
    raw_values = _load_json(raw_values, "Custom field values")
    if raw_values is None:
        return {}
    if not isinstance(raw_values, dict):
        raise ValidationError("Custom field values must be an object")

    by_name = {spec.name: spec for spec in specs}
    unknown = sorted(set(raw_values) - set(by_name))
    if unknown:
        raise ValidationError(f"Unknown custom fields: {', '.join(unknown)}")

    values = {}
    for name, raw in raw_values.items():
        spec = by_name[name]
        values[name] = FieldValue(type=spec.type, value=spec.type.coerce(name, raw))
    return values


def dump_values(values):
    return {name: field.value for name, field in values.items()}


def conform_values(specs, stored):
    """Fit previously stored values to a replacement schema.

    Keys the schema no longer declares are dropped; the rest are coerced
    to their new type, raising ValidationError when one cannot be.
    """
    by_name = {spec.name: spec for spec in specs}
    return {
        name: by_name[name].type.coerce(name, value)
        for name, value in (stored or {}).items()
        if name in by_name
    }
