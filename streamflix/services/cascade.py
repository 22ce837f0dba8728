"""
Cascading deletes.

The schema's delete dependencies are declared once, as a graph from each
parent table to the tables whose rows reference it. Deleting from a table
walks the graph depth-first and removes dependents before their parents,
which is a topological order of the graph. A new dependent table only needs
an entry here to be covered by every delete that reaches its parent.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from sqlalchemy import and_, delete, select, tuple_
from sqlalchemy.orm import Session

from streamflix.models.base import BaseModel
from streamflix.models.movie import Movie, Rating, ReviewText, WatchRecord
from streamflix.models.sequence import IdSequence
from streamflix.models.subscription import (
    Subscription,
    SubscriptionOwnerLink,
    SubscriptionPlanLink,
)
from streamflix.models.user import (
    BillingAddress,
    FreeUser,
    PaymentMethod,
    Subscriber,
    User,
    UserPhone,
)
from streamflix.services.sequences import RATING_SCOPE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependent:
    """
    A table whose rows reference a parent table.

    Attributes:
        model: The dependent model
        keys: (dependent column, parent column) pairs forming the reference
        condition: Optional extra filter on the dependent model
    """
    model: Type[BaseModel]
    keys: Tuple[Tuple[str, str], ...]
    condition: Optional[Callable[[Any], Any]] = None


# Sibling order is the order dependents are removed in.
DEPENDENTS: Dict[Type[BaseModel], Tuple[Dependent, ...]] = {
    User: (
        Dependent(Rating, (("user_email", "email"),)),
        Dependent(WatchRecord, (("email", "email"),)),
        Dependent(Subscriber, (("email", "email"),)),
        Dependent(FreeUser, (("email", "email"),)),
        Dependent(UserPhone, (("email", "email"),)),
    ),
    Subscriber: (
        Dependent(PaymentMethod, (("email", "email"),)),
        Dependent(BillingAddress, (("email", "email"),)),
        Dependent(SubscriptionOwnerLink, (("email", "email"),)),
    ),
    Rating: (
        Dependent(ReviewText, (("movie_id", "movie_id"), ("rating_id", "rating_id"))),
    ),
    Movie: (
        Dependent(Rating, (("movie_id", "movie_id"),)),
        Dependent(WatchRecord, (("movie_id", "movie_id"),)),
        Dependent(
            IdSequence,
            (("scope_key", "movie_id"),),
            condition=lambda seq: seq.scope == RATING_SCOPE,
        ),
    ),
    Subscription: (
        Dependent(SubscriptionPlanLink, (("sub_id", "sub_id"),)),
        Dependent(SubscriptionOwnerLink, (("sub_id", "sub_id"),)),
    ),
}


def deletion_order(
    root: Type[BaseModel],
    graph: Optional[Dict[Type[BaseModel], Tuple[Dependent, ...]]] = None,
) -> List[str]:
    """
    List the tables a delete from ``root`` touches, in the order it touches them.

    Args:
        root: The model being deleted from
        graph: Dependency graph, defaults to DEPENDENTS

    Returns:
        List[str]: Table names, dependents first and ``root`` last

    Raises:
        ValueError: If the graph contains a cycle
    """
    graph = DEPENDENTS if graph is None else graph
    order: List[str] = []

    def visit(model, path):
        if model in path:
            raise ValueError(f"Cycle in delete dependencies at {model.__tablename__}")
        for dependent in graph.get(model, ()):
            visit(dependent.model, path + (model,))
        order.append(model.__tablename__)

    visit(root, ())
    return order


class CascadeDelete:
    """
    Deletes rows together with everything that references them.

    Runs inside the caller's transaction; committing or rolling back is up
    to the caller.
    """

    def __init__(
        self,
        db: Session,
        graph: Optional[Dict[Type[BaseModel], Tuple[Dependent, ...]]] = None,
    ):
        self.db = db
        self.graph = DEPENDENTS if graph is None else graph

    def run(
        self,
        root: Type[BaseModel],
        criterion: Any,
        counts: Optional[Dict[str, int]] = None,
    ) -> Dict[str, int]:
        """
        Delete the ``root`` rows matching ``criterion`` and their dependents.

        Args:
            root: Model to delete from
            criterion: SQL expression selecting the root rows
            counts: Optional dict to accumulate into

        Returns:
            Dict[str, int]: Rows removed per table
        """
        counts = {} if counts is None else counts
        self._delete(root, criterion, counts, ())
        # Loaded instances may describe rows that are gone now
        self.db.expire_all()
        return counts

    def _delete(self, model, criterion, counts, path):
        if model in path:
            raise ValueError(f"Cycle in delete dependencies at {model.__tablename__}")

        for dependent in self.graph.get(model, ()):
            parent_columns = [getattr(model, parent) for _, parent in dependent.keys]
            child_columns = [getattr(dependent.model, child) for child, _ in dependent.keys]
            parents = select(*parent_columns).where(criterion)

            if len(child_columns) == 1:
                child_criterion = child_columns[0].in_(parents)
            else:
                child_criterion = tuple_(*child_columns).in_(parents)
            if dependent.condition is not None:
                child_criterion = and_(child_criterion, dependent.condition(dependent.model))

            self._delete(dependent.model, child_criterion, counts, path + (model,))

        result = self.db.execute(
            delete(model).where(criterion).execution_options(synchronize_session=False)
        )
        table = model.__tablename__
        counts[table] = counts.get(table, 0) + (result.rowcount or 0)
        logger.debug(f"Deleted {result.rowcount} row(s) from {table}")
