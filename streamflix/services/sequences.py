"""
Identifier allocation.

Ids are handed out per scope: subscriptions and movies share one global
counter each, ratings count per movie. The scope's row in id_sequences is
created on first use and then locked for the rest of the transaction, so
two writers in the same scope take turns instead of reading the same max.
On SQLite the lock is the database write lock taken by BEGIN IMMEDIATE
(see streamflix.db.session).
"""
import logging

from sqlalchemy import func, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from streamflix.models.movie import Movie, Rating
from streamflix.models.sequence import IdSequence
from streamflix.models.subscription import Subscription

logger = logging.getLogger(__name__)

SUBSCRIPTION_SCOPE = "subscription"
MOVIE_SCOPE = "movie"
RATING_SCOPE = "rating"
GLOBAL_KEY = 0

_INSERT_OR_IGNORE = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class IdAllocator:
    """
    Allocates the next identifier for a scope inside the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def next_subscription_id(self) -> int:
        return self._next(SUBSCRIPTION_SCOPE, GLOBAL_KEY, Subscription.sub_id)

    def next_movie_id(self) -> int:
        return self._next(MOVIE_SCOPE, GLOBAL_KEY, Movie.movie_id)

    def next_rating_id(self, movie_id: int) -> int:
        """Rating ids are scoped to their movie and start at 1."""
        return self._next(RATING_SCOPE, movie_id, Rating.rating_id, Rating.movie_id == movie_id)

    def _next(self, scope: str, scope_key: int, column, *criteria) -> int:
        """
        Lock the scope and return max(last issued, current max) + 1.

        Taking the current max into account keeps rows that were written
        without going through the allocator (imports, caller-chosen movie
        ids) from colliding with new ids. Taking the last issued value into
        account keeps deleted ids from being handed out again.
        """
        self._ensure_sequence(scope, scope_key)
        sequence = (
            self.db.query(IdSequence)
            .filter(IdSequence.scope == scope, IdSequence.scope_key == scope_key)
            .with_for_update()
            .one()
        )
        current_max = self.db.query(func.coalesce(func.max(column), 0)).filter(*criteria).scalar()

        next_id = max(sequence.last_value or 0, current_max or 0) + 1
        sequence.last_value = next_id
        self.db.flush()

        logger.debug(f"Allocated {scope}[{scope_key}] id {next_id}")
        return next_id

    def _ensure_sequence(self, scope: str, scope_key: int) -> None:
        """
        Create the scope's row unless it already exists.

        The first writers in a new scope race to create the row; whoever
        loses must keep its transaction and wait on the winner's row lock.
        """
        values = {"scope": scope, "scope_key": scope_key, "last_value": 0}
        insert_or_ignore = _INSERT_OR_IGNORE.get(self.db.get_bind().dialect.name)

        if insert_or_ignore is not None:
            self.db.execute(insert_or_ignore(IdSequence).values(**values).on_conflict_do_nothing())
            return

        try:
            with self.db.begin_nested():
                self.db.execute(insert(IdSequence).values(**values))
        except IntegrityError:
            logger.debug(f"Sequence {scope}[{scope_key}] already exists")
