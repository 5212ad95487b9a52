"""
Error types and the service-layer error translation decorator.

Every service function wraps its driver errors the same way: a missing row
becomes ``None``, anything else is re-raised as ``DatabaseError`` with the
message ``Error <action>: <driver message>``. Constraint violations use the
``ConstraintError`` subclass so routes can turn them into 409s.
"""

from functools import wraps

from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError

from skillweave.core.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """A persistence-layer failure with a templated, user-facing message."""

    def __init__(self, action: str, error: Exception):
        self.action = action
        self.original = error
        super().__init__(f"Error {action}: {_driver_message(error)}")


class ConstraintError(DatabaseError):
    """A unique, foreign key or not-null constraint rejected the write."""

    @property
    def constraint_text(self) -> str:
        return _driver_message(self.original).lower()


def _driver_message(error: Exception) -> str:
    # DBAPI errors carry the useful text on .orig
    orig = getattr(error, "orig", None)
    return str(orig if orig is not None else error).strip()


def translate_errors(action: str):
    """
    Decorator factory for async service functions.

    Args:
        action: Human readable action used in the error message,
            e.g. "finding portfolio"
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except NoResultFound:
                return None
            except IntegrityError as e:
                logger.warning(f"Constraint violation while {action}: {_driver_message(e)}")
                raise ConstraintError(action, e) from e
            except SQLAlchemyError as e:
                logger.error(f"Database error while {action}: {e}")
                raise DatabaseError(action, e) from e
        return wrapper
    return decorator
