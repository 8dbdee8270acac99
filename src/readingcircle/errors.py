"""Error taxonomy and the manager error boundary.

Managers raise the exceptions below internally. Every public manager
operation is wrapped with :func:`guarded`, which turns a failure into a
human-readable message on ``manager.error`` and a default return value, so
nothing propagates to the caller as an unhandled fault.
"""

import functools
import logging
from typing import Any, Callable

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ReadingCircleError(Exception):
    """Base exception for readingcircle errors."""

    pass


class ValidationError(ReadingCircleError):
    """Raised for malformed input, before any store call is made."""

    pass


class ConflictError(ReadingCircleError):
    """Raised when an operation clashes with existing state.

    Examples: duplicate pending invite, already connected, username taken,
    responding to a recommendation that is no longer pending.
    """

    pass


class PersistenceError(ReadingCircleError):
    """Raised when a store read or write fails, including "not found"."""

    pass


class PartialFailureError(PersistenceError):
    """Raised when a later step of a multi-step write fails.

    Earlier steps have already been committed and are not rolled back.
    """

    pass


def describe_schema_error(exc: SchemaValidationError) -> str:
    """Render the first pydantic error as a short message."""
    errors = exc.errors()
    if not errors:
        return "Invalid input"

    first = errors[0]
    message = first.get("msg", "Invalid input")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    location = ".".join(str(part) for part in first.get("loc", ()))
    if location and not first.get("type", "").startswith("value_error"):
        return f"{location}: {message}"
    return message


def guarded(default: Any = None, message: str = "Operation failed") -> Callable:
    """Catch failures at a manager's public boundary.

    Args:
        default: Value returned on failure. A callable (e.g. ``list``) is
            called to build a fresh value.
        message: Prefix for store failures, shown to the user.

    The wrapped method's instance must expose a writable ``error`` attribute.
    On success ``error`` is reset to None.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                result = func(self, *args, **kwargs)
            except SchemaValidationError as e:
                failure: ReadingCircleError = ValidationError(describe_schema_error(e))
                logger.warning("%s.%s rejected input: %s", type(self).__name__, func.__name__, failure)
            except PersistenceError as e:
                failure = e
                logger.error("%s.%s failed: %s", type(self).__name__, func.__name__, e)
            except ReadingCircleError as e:
                failure = e
                logger.warning("%s.%s refused: %s", type(self).__name__, func.__name__, e)
            except SQLAlchemyError as e:
                failure = PersistenceError(f"{message}: {e.__class__.__name__}")
                logger.exception("%s.%s store error", type(self).__name__, func.__name__)
            else:
                self.error = None
                return result

            self.error = str(failure)
            return default() if callable(default) else default

        return wrapper

    return decorator
