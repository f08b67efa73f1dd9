# pollboard/database/models.py

from pollboard import db
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc)


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(150), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)  # Argon2id hash
    role = db.Column(db.String(20), nullable=False)  # admin | user

    participations = db.relationship('Participation', back_populates='user', passive_deletes=True)

    def __repr__(self):
        return f'<User {self.username} ({self.role})>'


class Choice(db.Model):
    __tablename__ = 'choices'
    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(100), unique=True, nullable=False)
    pick_count = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (db.CheckConstraint('pick_count >= 0', name='ck_choices_pick_count'),)

    def to_dict(self):
        return {'id': self.id, 'label': self.label, 'pick_count': self.pick_count}


class VoteLogEntry(db.Model):
    __tablename__ = 'vote_log'
    id = db.Column(db.Integer, primary_key=True)
    choice_label = db.Column(db.String(100), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    def to_dict(self):
        return {'id': self.id, 'choice_label': self.choice_label, 'timestamp': self.timestamp.isoformat()}


class Event(db.Model):
    __tablename__ = 'events'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    date = db.Column(db.String(40), nullable=False)  # ISO-8601 text
    location = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(100), nullable=False)
    custom_field_schema = db.Column(db.JSON, nullable=False, default=list)  # [{"name": ..., "type": ...}]

    participations = db.relationship(
        'Participation', back_populates='event', cascade='all, delete-orphan', passive_deletes=True
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'date': self.date,
            'location': self.location,
            'type': self.type,
            'custom_field_schema': list(self.custom_field_schema or []),
        }


class Participation(db.Model):
    __tablename__ = 'event_participants'
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    status = db.Column(db.String(50), nullable=False)
    custom_field_values = db.Column(db.JSON, nullable=False, default=dict)

    __table_args__ = (db.UniqueConstraint('event_id', 'user_id', name='uq_event_participants_event_user'),)

    event = db.relationship('Event', back_populates='participations')
    user = db.relationship('User', back_populates='participations')

    def __repr__(self):
        return f'<Participation event={self.event_id} user={self.user_id} {self.status}>'


class RevokedSession(db.Model):
    __tablename__ = 'revoked_sessions'
    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(64), unique=True, nullable=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    # Rows past this point guard nothing, the token itself has expired
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
