# pollboard/security/input_validator.py

import re
import html
import bleach
from datetime import datetime

from pollboard.errors import ValidationError

# Input validation and sanitization for everything users type into the app.
# Text is stored as plain text with markup stripped; templates escape on output.

EVENT_TEXT_FIELDS = ('name', 'location', 'type')
EVENT_FIELDS = ('name', 'date', 'location', 'type', 'custom_field_schema')


class InputValidator:
    def __init__(self):
        self.patterns = {
            'username': re.compile(r'^[A-Za-z0-9_.@-]{1,150}$'),
            'xss_script': re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL),
            'xss_event': re.compile(r'\bon\w+\s*=', re.IGNORECASE),
        }
        self.max_lengths = {'name': 200, 'location': 200, 'type': 100, 'status': 50}

    def sanitize_string(self, input_str, max_length=255, field='Input'):
        if isinstance(input_str, bool) or not isinstance(input_str, (str, int, float)):
            raise ValidationError(f"{field} must be a string")
        input_str = str(input_str)
        if len(input_str) > max_length:
            raise ValidationError(f"{field} is too long (max {max_length} characters)")
        sanitized = re.sub(self.patterns['xss_script'], '', input_str)
        sanitized = re.sub(self.patterns['xss_event'], '', sanitized)
        sanitized = bleach.clean(sanitized, tags=[], attributes={}, strip=True)
        return html.unescape(sanitized).strip()

    def validate_username(self, username):
        return isinstance(username, str) and bool(self.patterns['username'].match(username))

    def require_text(self, data, field):
        value = data.get(field)
        if value is None:
            raise ValidationError(f"Missing required field: {field}")
        value = self.sanitize_string(value, max_length=self.max_lengths.get(field, 255), field=f"Field '{field}'")
        if not value:
            raise ValidationError(f"Field '{field}' must not be empty")
        return value

    def validate_date(self, value):
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("Missing required field: date")
        value = value.strip()
        try:
            datetime.fromisoformat(value)
        except ValueError:
            raise ValidationError("Invalid date format, expected ISO-8601")
        return value

    def validate_event_data(self, data, partial=False):
        """Validate event attributes.

        With ``partial`` only the supplied fields are checked and returned.
        The custom field schema is passed through for fields.parse_schema.
        """
        if not isinstance(data, dict):
            raise ValidationError("Event data must be an object")

        unknown = set(data) - set(EVENT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")

        cleaned = {}
        for field in EVENT_TEXT_FIELDS:
            if field in data or not partial:
                cleaned[field] = self.require_text(data, field)
        if 'date' in data or not partial:
            cleaned['date'] = self.validate_date(data.get('date'))
        if 'custom_field_schema' in data:
            cleaned['custom_field_schema'] = data['custom_field_schema']
        return cleaned

    def validate_status(self, status):
        if status is None:
            raise ValidationError("Missing required field: status")
        status = self.sanitize_string(status, max_length=self.max_lengths['status'], field="Field 'status'")
        if not status:
            raise ValidationError("Field 'status' must not be empty")
        return status
