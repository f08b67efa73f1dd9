# pollboard/services.py

from pollboard.authentication.credentials import CredentialStore
from pollboard.authentication.guard import SessionGuard
from pollboard.encryption.password_hashing import PasswordHashingService
from pollboard.events.ledger import ParticipationLedger
from pollboard.events.registry import EventRegistry
from pollboard.poll.engine import PollEngine
from pollboard.security.input_validator import InputValidator


class CoreServices:
    """The core components, each handed the same datastore session at construction."""

    def __init__(self, session, config, audit_logger):
        self.session = session
        self.audit = audit_logger
        self.validator = InputValidator()
        self.passwords = PasswordHashingService.from_config(config)
        self.credentials = CredentialStore(session, self.passwords)
        self.guard = SessionGuard(session, self.credentials, lifetime=config['JWT_ACCESS_TOKEN_EXPIRES'])
        self.poll = PollEngine(session)
        self.events = EventRegistry(session, self.validator)
        self.ledger = ParticipationLedger(session, self.validator)
