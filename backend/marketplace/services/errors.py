"""
Translation of SQLAlchemy failures into application exceptions.

Every service wraps its queries in `database_errors(...)` so that:
    - our own MarketplaceError subclasses pass through untouched
    - unique/foreign-key violations become ConflictError (409)
    - any other SQLAlchemyError becomes a generic DatabaseError (500),
      with the driver message logged but never returned
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from marketplace.exceptions import ConflictError, DatabaseError

logger = logging.getLogger(__name__)


@contextmanager
def database_errors(action: str, conflict_message: Optional[str] = None) -> Iterator[None]:
    """
    Args:
        action: Short description used in logs and the generic error message,
                e.g. "update the project".
        conflict_message: Message for integrity violations; when omitted they
                are treated like any other database failure.
    """
    try:
        yield
    except IntegrityError as e:
        if conflict_message is None:
            logger.error("Integrity error while trying to %s: %s", action, e.orig)
            raise DatabaseError(
                message=f"Could not {action}. Please try again.",
                context={"error_type": "IntegrityError"},
            ) from e
        logger.info("Conflict while trying to %s: %s", action, e.orig)
        raise ConflictError(message=conflict_message) from e
    except SQLAlchemyError as e:
        logger.error("Database error while trying to %s: %s", action, str(e), exc_info=True)
        raise DatabaseError(
            message=f"Could not {action}. Please try again.",
            context={"error_type": type(e).__name__},
        ) from e
