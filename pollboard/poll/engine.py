# pollboard/poll/engine.py

import logging
from datetime import datetime, timezone

from pollboard.database.models import Choice, VoteLogEntry
from pollboard.database.transactions import transactional, reading
from pollboard.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 20


class PollEngine:
    """Vote tallies plus the append-only vote log.

    Tallies live on Choice.pick_count rather than being counted from the
    log, so every mutation touches both in a single commit.
    """

    def __init__(self, session):
        self.session = session

    @reading
    def list_choices(self):
        return [c.to_dict() for c in self.session.query(Choice).order_by(Choice.id).all()]

    @transactional
    def cast_vote(self, choice_label):
        if not isinstance(choice_label, str) or not choice_label:
            raise ValidationError("A choice is required")
        exists = self.session.query(Choice.id).filter_by(label=choice_label).first()
        if exists is None:
            raise ValidationError(f"Unknown choice: {choice_label}")

        self.session.add(VoteLogEntry(choice_label=choice_label, timestamp=datetime.now(timezone.utc)))
        self.session.query(Choice).filter_by(label=choice_label).update(
            {Choice.pick_count: Choice.pick_count + 1}, synchronize_session=False
        )
        self.session.commit()
        logger.info(f"Vote recorded for {choice_label}")
        return self.list_choices()

    @reading
    def recent_log(self, limit=DEFAULT_LOG_LIMIT):
        query = self.session.query(VoteLogEntry).order_by(VoteLogEntry.timestamp.desc(), VoteLogEntry.id.desc())
        return [entry.to_dict() for entry in query.limit(limit).all()]

    @transactional
    def reset_all(self):
        self.session.query(VoteLogEntry).delete(synchronize_session=False)
        self.session.query(Choice).update({Choice.pick_count: 0}, synchronize_session=False)
        self.session.commit()
        logger.info("Poll history cleared and tallies reset")
        return []
