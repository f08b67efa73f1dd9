# pollboard/database/init_db.py

import logging

from pollboard import db
from pollboard.database.models import Choice, User

logger = logging.getLogger(__name__)

DEFAULT_USERS = (
    ('admin', 'SEED_ADMIN_PASSWORD', 'admin'),
    ('user1', 'SEED_USER_PASSWORD', 'user'),
    ('user2', 'SEED_USER_PASSWORD', 'user'),
    ('user3', 'SEED_USER_PASSWORD', 'user'),
)


def init_db(session, config, credentials):
    """Create tables and seed choices and default users. Safe to run repeatedly."""
    db.create_all()

    existing = {label for (label,) in session.query(Choice.label).all()}
    missing = [label for label in config['DEFAULT_CHOICES'] if label not in existing]
    for label in missing:
        session.add(Choice(label=label, pick_count=0))
    session.commit()
    if missing:
        logger.info(f"Seeded poll choices: {', '.join(missing)}")

    if not config['SEED_DEFAULT_USERS']:
        return
    for username, password_key, role in DEFAULT_USERS:
        if session.query(User.id).filter_by(username=username).first() is None:
            credentials.create_user(username, config[password_key], role)
            logger.info(f"Seeded default {role} account {username}")
