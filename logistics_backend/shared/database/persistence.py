# logistics_backend/shared/database/persistence.py
import logging
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from logistics_backend.core.exceptions import (
    ConflictError, ConcurrentModificationError, LogisticsError, PersistenceError
)

logger = logging.getLogger(__name__)


def commit_changes(
    db: Session,
    resource: str,
    on_integrity_error: Optional[Callable[[IntegrityError], LogisticsError]] = None
):
    """
    Commit the unit of work for one aggregate.

    A version mismatch (another request wrote the row since it was read)
    becomes ConcurrentModificationError, a unique/foreign key violation
    becomes the caller's conflict error and anything else raised by the
    driver becomes PersistenceError. The session is always rolled back on
    failure so nothing is partially written.
    """
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(f"Stale write rejected for {resource}")
        raise ConcurrentModificationError(resource)
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error on {resource}: {e.orig}")
        if on_integrity_error is not None:
            raise on_integrity_error(e)
        raise ConflictError(f"{resource} conflicts with an existing record")
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"❌ Error persisting {resource}")
        raise PersistenceError()
