# pollboard/authentication/guard.py

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import IntegrityError

from pollboard.authentication.rbac import ALL_ROLES
from pollboard.database.models import RevokedSession
from pollboard.database.transactions import transactional, reading
from pollboard.errors import AuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: int
    username: str
    role: str

    def to_dict(self):
        return {'user_id': self.user_id, 'username': self.username, 'role': self.role}


@dataclass(frozen=True)
class Session:
    token: str
    identity: Identity
    expires_at: datetime


class SessionGuard:
    """Turns credentials into sessions and sessions back into identities.

    A session is a signed JWT carrying the user id, username and role. It
    expires a fixed time after issuance and can be revoked early by
    destroy_session. Anonymous is represented by ``None``.
    """

    def __init__(self, session, credentials, lifetime=timedelta(hours=1)):
        self.session = session
        self.credentials = credentials
        self.lifetime = lifetime
        self._dummy_hash = None

    def _burn_verify(self, password):
        # Same hashing work as a real check so a lookup miss is not observable
        if self._dummy_hash is None:
            self._dummy_hash = self.credentials.passwords.hash_password(secrets.token_urlsafe(16))
        self.credentials.verify_password(password or '', self._dummy_hash)

    def authenticate(self, username, password):
        user = self.credentials.find_user_by_username(username)
        if user is None:
            self._burn_verify(password)
            raise AuthError()
        if not self.credentials.verify_password(password, user.password_hash):
            raise AuthError()

        if self.credentials.needs_rehash(user.password_hash):
            self.credentials.update_password_hash(user, password)

        identity = Identity(user_id=user.id, username=user.username, role=user.role)
        token = create_access_token(
            identity=str(user.id),
            additional_claims={'username': user.username, 'role': user.role},
            expires_delta=self.lifetime,
        )
        return Session(token=token, identity=identity, expires_at=datetime.now(timezone.utc) + self.lifetime)

    def _decode(self, token, allow_expired=False):
        if not token or not isinstance(token, str):
            return None
        try:
            return decode_token(token, allow_expired=allow_expired)
        except (PyJWTError, JWTExtendedException) as e:
            logger.debug(f"Session token rejected: {e}")
            return None

    @reading
    def _is_revoked(self, jti):
        return self.session.query(RevokedSession.id).filter_by(jti=jti).first() is not None

    def resolve_session(self, token):
        claims = self._decode(token)
        if not claims or claims.get('type') != 'access':
            return None
        jti = claims.get('jti')
        if not jti or self._is_revoked(jti):
            return None
        role = claims.get('role')
        if role not in ALL_ROLES:
            return None
        try:
            user_id = int(claims['sub'])
        except (KeyError, TypeError, ValueError):
            return None
        return Identity(user_id=user_id, username=claims.get('username'), role=role)

    def _prune_revoked(self, now):
        removed = self.session.query(RevokedSession).filter(
            RevokedSession.expires_at <= now
        ).delete(synchronize_session=False)
        if removed:
            logger.debug(f"Pruned {removed} revoked session(s) past expiry")

    @transactional
    def destroy_session(self, token):
        """Revoke a session. Returns False when there was nothing valid to revoke."""
        claims = self._decode(token, allow_expired=True)
        if not claims or not claims.get('jti'):
            return False
        try:
            expires_at = datetime.fromtimestamp(int(claims['exp']), timezone.utc)
        except (KeyError, TypeError, ValueError):
            return False
        now = datetime.now(timezone.utc)
        self._prune_revoked(now)
        if expires_at <= now or self._is_revoked(claims['jti']):
            self.session.commit()
            return False
        self.session.add(RevokedSession(jti=claims['jti'], expires_at=expires_at))
        try:
            self.session.commit()
        except IntegrityError:
            # Revoked concurrently
            self.session.rollback()
            return False
        return True
