# pollboard/database/transactions.py

import logging
from functools import wraps

from sqlalchemy.exc import SQLAlchemyError

from pollboard.errors import StorageFailure

logger = logging.getLogger(__name__)


def transactional(func):
    """Run a service method as one unit of work against ``self.session``.

    The wrapped method is responsible for calling ``commit``. Any exception
    rolls the session back so no partial mutation survives; datastore errors
    are logged and surfaced as a generic StorageFailure.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"{type(self).__name__}.{func.__name__} storage error: {e}")
            raise StorageFailure() from e
        except Exception:
            self.session.rollback()
            raise
    return wrapper


def reading(func):
    """Surface datastore errors on read paths as StorageFailure."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"{type(self).__name__}.{func.__name__} storage error: {e}")
            raise StorageFailure() from e
    return wrapper
