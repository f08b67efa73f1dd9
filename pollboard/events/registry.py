# pollboard/events/registry.py

import logging

from pollboard.database.models import Event, Participation
from pollboard.database.transactions import transactional, reading
from pollboard.events.fields import conform_values, parse_schema, dump_schema
from pollboard.security.input_validator import InputValidator

logger = logging.getLogger(__name__)


class EventRegistry:
    """Admin-managed events. The custom field schema is validated and stored, never interpreted."""

    def __init__(self, session, validator=None):
        self.session = session
        self.validator = validator or InputValidator()

    @transactional
    def add_event(self, name, date, location, type, schema=None):
        data = self.validator.validate_event_data(
            {'name': name, 'date': date, 'location': location, 'type': type, 'custom_field_schema': schema}
        )
        event = Event(
            name=data['name'],
            date=data['date'],
            location=data['location'],
            type=data['type'],
            custom_field_schema=dump_schema(parse_schema(schema)),
        )
        self.session.add(event)
        self.session.commit()
        logger.info(f"Event {event.id} created: {event.name}")
        return event.id

    @transactional
    def update_event(self, event_id, **fields):
        """Update the given attributes. Returns 0 when the event is missing or nothing was given."""
        fields = {k: v for k, v in fields.items() if v is not None}
        if not fields:
            return 0
        values = self.validator.validate_event_data(fields, partial=True)
        specs = None
        if 'custom_field_schema' in values:
            specs = parse_schema(values['custom_field_schema'])
            values['custom_field_schema'] = dump_schema(specs)
        changed = self.session.query(Event).filter_by(id=event_id).update(values, synchronize_session=False)
        if changed and specs is not None:
            self._conform_participations(event_id, specs)
        self.session.commit()
        return changed

    def _conform_participations(self, event_id, specs):
        # Stored values follow the event's current schema, in the same commit
        for record in self.session.query(Participation).filter_by(event_id=event_id).all():
            conformed = conform_values(specs, record.custom_field_values)
            if conformed != (record.custom_field_values or {}):
                record.custom_field_values = conformed
                logger.info(f"Participation {record.id} custom fields conformed to event {event_id} schema")

    @transactional
    def delete_event(self, event_id):
        # Participations go first, in the same transaction as the event row
        removed = self.session.query(Participation).filter_by(event_id=event_id).delete(synchronize_session=False)
        changed = self.session.query(Event).filter_by(id=event_id).delete(synchronize_session=False)
        self.session.commit()
        if changed:
            logger.info(f"Event {event_id} deleted with {removed} participation(s)")
        return changed

    @reading
    def list_events(self):
        return [e.to_dict() for e in self.session.query(Event).order_by(Event.id).all()]
