# pollboard/authentication/credentials.py

from pollboard.authentication.rbac import UserRole
from pollboard.database.models import User
from pollboard.database.transactions import transactional, reading
from pollboard.errors import ValidationError


class CredentialStore:
    """User records and password checks.

    Callers must treat a lookup miss and a password mismatch the same way.
    """

    def __init__(self, session, password_service):
        self.session = session
        self.passwords = password_service

    @reading
    def find_user_by_username(self, username):
        if not isinstance(username, str) or not username:
            return None
        return self.session.query(User).filter_by(username=username).first()

    def verify_password(self, plaintext, stored_hash):
        return self.passwords.verify_password(plaintext, stored_hash)

    def needs_rehash(self, stored_hash):
        return self.passwords.needs_rehash(stored_hash)

    @transactional
    def create_user(self, username, password, role):
        username = (username or '').strip()
        if not username:
            raise ValidationError("Username is required")
        try:
            role = UserRole(role).value
        except ValueError:
            raise ValidationError(f"Unknown role: {role}")
        if self.session.query(User).filter_by(username=username).first():
            raise ValidationError(f"User {username} already exists")
        try:
            password_hash = self.passwords.hash_password(password)
        except ValueError as e:
            raise ValidationError(str(e))
        user = User(username=username, password_hash=password_hash, role=role)
        self.session.add(user)
        self.session.commit()
        return user

    @transactional
    def update_password_hash(self, user, password):
        # password_hash is the only mutable column on a user
        user.password_hash = self.passwords.hash_password(password)
        self.session.commit()
        return user
