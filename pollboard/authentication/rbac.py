# pollboard/authentication/rbac.py

from enum import Enum
from functools import wraps
from flask import g, current_app

from pollboard.errors import Forbidden

# Role-Based Access Control: the one place role checks happen.


class UserRole(Enum):
    ADMIN = "admin"
    USER = "user"


ALL_ROLES = frozenset(role.value for role in UserRole)


def _normalize(roles):
    return {r.value if isinstance(r, UserRole) else str(r).lower() for r in roles}


def has_role(identity, allowed_roles):
    """Pure check: True iff identity is present and its role is allowed."""
    if identity is None:
        return False
    return identity.role in _normalize(allowed_roles)


def require_role(identity, allowed_roles):
    if not has_role(identity, allowed_roles):
        raise Forbidden()
    return identity


# Decorator applying require_role to the identity resolved for the request
def role_required(*roles):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            identity = g.get('identity')
            if not has_role(identity, roles):
                current_app.extensions['pollboard'].audit.log_security_event(
                    'forbidden',
                    {'endpoint': func.__name__, 'role': identity.role if identity else None},
                    user_id=identity.user_id if identity else None,
                )
            require_role(identity, roles)
            return func(*args, **kwargs)
        return wrapper
    return decorator
