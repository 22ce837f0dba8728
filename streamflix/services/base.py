"""
Base service module.

Provides the unit-of-work wrapper shared by all write services.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from streamflix.core.exceptions import NotFoundError, StreamflixError, TransactionError
from streamflix.models.user import User

logger = logging.getLogger(__name__)


class BaseService:
    """
    Base class for services working on a database session.
    """

    def __init__(self, db: Session):
        """
        Initialize the service.

        Args:
            db: Database session
        """
        self.db = db

    @contextmanager
    def transaction(self, operation: str) -> Iterator[Session]:
        """
        Run a block as one all-or-nothing unit of work.

        Commits when the block completes. On any error the session is rolled
        back and the error is re-raised; store errors are wrapped in
        TransactionError with the original as cause.

        Args:
            operation: Human-readable name used in logs and error messages

        Yields:
            Session: The service's session

        Raises:
            StreamflixError: Domain errors raised inside the block
            TransactionError: If the store fails mid-write or on commit
        """
        try:
            yield self.db
            self.db.commit()
        except StreamflixError as e:
            self.db.rollback()
            logger.warning(f"Rolled back {operation}: {e.message}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error during {operation}: {str(e)}")
            raise TransactionError(operation, e) from e
        except Exception:
            self.db.rollback()
            logger.exception(f"Unexpected error during {operation}")
            raise

    def _get_user(self, email: str) -> User:
        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            logger.warning(f"User not found: {email}")
            raise NotFoundError("User", email)
        return user
