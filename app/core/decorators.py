# app/core/decorators.py
import copy
import logging
from functools import wraps
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


def db_guard(default: Any = None) -> Callable:
    """
    Guard a service method whose first argument (after self) is a Session.

    - No session (database not configured) => log a warning, return `default`.
    - SQLAlchemyError while running => roll back, log, return `default`.

    Anything else (HTTPException included) propagates unchanged.

    Mutable defaults are copied per call so callers may append to the result.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> Any:
            session = kwargs["session"] if "session" in kwargs else (args[0] if args else None)

            if session is None:
                logger.warning(f"{func.__qualname__}: database not configured, skipping")
                return copy.copy(default)

            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"{func.__qualname__}: query failed: {e}")
                return copy.copy(default)

        return wrapper

    return decorator
