import pytest

from pollboard.errors import ValidationError
from pollboard.security.input_validator import InputValidator


@pytest.fixture
def validator():
    return InputValidator()


def test_sanitize_string_strips_markup(validator):
    assert validator.sanitize_string("<b>Summer</b> party") == "Summer party"
    assert validator.sanitize_string("<script>alert(1)</script>Gala") == "Gala"
    assert validator.sanitize_string("  Rock & Roll  ") == "Rock & Roll"


def test_sanitize_string_rejects_overlong_input(validator):
    assert validator.sanitize_string("a" * 10, max_length=10) == "a" * 10
    with pytest.raises(ValidationError):
        validator.sanitize_string("a" * 11, max_length=10)


@pytest.mark.parametrize("field,limit", [("name", 200), ("location", 200), ("type", 100)])
def test_overlong_event_text_is_rejected(validator, field, limit):
    data = {"name": "Meetup", "date": "2025-06-01", "location": "Hall A", "type": "social"}
    data[field] = "x" * (limit + 1)
    with pytest.raises(ValidationError) as exc:
        validator.validate_event_data(data)
    assert field in exc.value.message

    data[field] = "x" * limit
    assert validator.validate_event_data(data)[field] == "x" * limit


def test_overlong_status_is_rejected(validator):
    with pytest.raises(ValidationError):
        validator.validate_status("g" * 51)


def test_sanitize_string_rejects_non_text(validator):
    with pytest.raises(ValidationError):
        validator.sanitize_string(["x"])
    with pytest.raises(ValidationError):
        validator.sanitize_string(None)


@pytest.mark.parametrize("username,ok", [
    ("user1", True),
    ("jane.doe@example.com", True),
    ("", False),
    ("bad name", False),
    ("<admin>", False),
])
def test_validate_username(validator, username, ok):
    assert validator.validate_username(username) is ok


def test_validate_event_data_full(validator):
    data = validator.validate_event_data({
        "name": "Meetup", "date": "2025-06-01", "location": "Hall A", "type": "social",
    })
    assert data == {"name": "Meetup", "date": "2025-06-01", "location": "Hall A", "type": "social"}


@pytest.mark.parametrize("data", [
    {"name": "Meetup", "date": "2025-06-01", "location": "Hall A"},
    {"name": "", "date": "2025-06-01", "location": "Hall A", "type": "social"},
    {"name": "Meetup", "date": "next friday", "location": "Hall A", "type": "social"},
    {"name": "Meetup", "date": "2025-06-01", "location": "Hall A", "type": "social", "owner": "me"},
])
def test_validate_event_data_rejects(validator, data):
    with pytest.raises(ValidationError):
        validator.validate_event_data(data)


def test_validate_event_data_partial(validator):
    assert validator.validate_event_data({"location": "Hall B"}, partial=True) == {"location": "Hall B"}
    with pytest.raises(ValidationError):
        validator.validate_event_data({"date": "soon"}, partial=True)


def test_validate_status(validator):
    assert validator.validate_status(" going ") == "going"
    with pytest.raises(ValidationError):
        validator.validate_status("")
    with pytest.raises(ValidationError):
        validator.validate_status(None)
