# pollboard/events/ledger.py

import logging

from sqlalchemy.exc import IntegrityError

from pollboard.database.models import Event, Participation, User
from pollboard.database.transactions import transactional, reading
from pollboard.events.fields import (
    MAX_STRING_VALUE_LENGTH, FieldType, parse_schema, validate_field_values, dump_values,
)
from pollboard.security.input_validator import InputValidator

logger = logging.getLogger(__name__)


class ParticipationLedger:
    """One participation row per (event, user), kept unique by the database constraint."""

    def __init__(self, session, validator=None):
        self.session = session
        self.validator = validator or InputValidator()

    def _find(self, event_id, user_id):
        return self.session.query(Participation).filter_by(event_id=event_id, user_id=user_id).first()

    def _clean_values(self, event, field_values):
        values = validate_field_values(parse_schema(event.custom_field_schema), field_values)
        cleaned = dump_values(values)
        for name, field in values.items():
            if field.type is FieldType.STRING:
                cleaned[name] = self.validator.sanitize_string(
                    field.value, max_length=MAX_STRING_VALUE_LENGTH, field=f"Field '{name}'"
                )
        return cleaned

    @transactional
    def upsert_participation(self, event_id, user_id, status, field_values=None):
        """Create or update the user's participation in an event.

        Returns the participation id, or 0 if the event does not exist.
        """
        event = self.session.get(Event, event_id)
        if event is None:
            return 0
        status = self.validator.validate_status(status)
        values = self._clean_values(event, field_values)

        existing = self._find(event_id, user_id)
        if existing is not None:
            existing.status = status
            existing.custom_field_values = values
            self.session.commit()
            return existing.id

        record = Participation(event_id=event_id, user_id=user_id, status=status, custom_field_values=values)
        self.session.add(record)
        try:
            self.session.commit()
            return record.id
        except IntegrityError:
            # Lost the insert race for this pair: apply ours as an update instead
            self.session.rollback()
            existing = self._find(event_id, user_id)
            if existing is None:
                raise
            logger.info(f"Participation insert for event {event_id} user {user_id} retried as update")
            existing.status = status
            existing.custom_field_values = values
            self.session.commit()
            return existing.id

    @reading
    def list_participations_for_user(self, user_id):
        rows = (
            self.session.query(Participation, Event)
            .join(Event, Participation.event_id == Event.id)
            .filter(Participation.user_id == user_id)
            .order_by(Participation.id)
            .all()
        )
        return [
            {
                'participant_id': p.id,
                'event_id': e.id,
                'event_name': e.name,
                'event_date': e.date,
                'event_location': e.location,
                'event_type': e.type,
                'custom_field_schema': list(e.custom_field_schema or []),
                'status': p.status,
                'custom_field_values': dict(p.custom_field_values or {}),
            }
            for p, e in rows
        ]

    @reading
    def list_all_participations_with_details(self):
        rows = (
            self.session.query(Participation, Event, User)
            .join(Event, Participation.event_id == Event.id)
            .join(User, Participation.user_id == User.id)
            .order_by(Participation.id)
            .all()
        )
        return [
            {
                'participant_id': p.id,
                'event_id': e.id,
                'event_name': e.name,
                'event_date': e.date,
                'event_location': e.location,
                'user_id': u.id,
                'participant_username': u.username,
                'status': p.status,
                'custom_field_values': dict(p.custom_field_values or {}),
            }
            for p, e, u in rows
        ]
