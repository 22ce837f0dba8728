"""
User role specialization.

A user's role is a variant: subscriber, free user (with a trial end date),
or plain user. It is stored as at most one row in either the subscribers or
the free_users table, and this module is the only writer of those tables.
"""
import logging
from datetime import date, timedelta
from typing import Dict, Optional

from sqlalchemy.orm import Session

from streamflix.core.config import settings
from streamflix.core.exceptions import ConflictError
from streamflix.models.subscription import Subscription, SubscriptionOwnerLink
from streamflix.models.user import FreeUser, Subscriber, UserRole
from streamflix.services.cascade import CascadeDelete

logger = logging.getLogger(__name__)


def default_trial_end(start: date) -> date:
    return start + timedelta(days=settings.DEFAULT_TRIAL_DAYS)


class RoleManager:
    """
    Reads and writes a user's role variant inside the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db
        self.cascade = CascadeDelete(db)

    def current(self, email: str) -> UserRole:
        if self._subscriber(email) is not None:
            return UserRole.SUBSCRIBER
        if self._free_user(email) is not None:
            return UserRole.FREE_USER
        return UserRole.USER

    def assign(
        self,
        email: str,
        role: UserRole,
        trial_end_date: Optional[date] = None,
        reference_date: Optional[date] = None,
    ) -> None:
        """
        Add the specialization row for ``role``.

        Args:
            email: The user's email
            role: The role to assign
            trial_end_date: Trial end for free users
            reference_date: Date the default trial length counts from, today if omitted

        Raises:
            ConflictError: If the user already holds the other specialization
        """
        if role == UserRole.FREE_USER:
            if self._subscriber(email) is not None:
                raise ConflictError(f"User {email} is a subscriber and cannot also be a free user")
            trial_end = trial_end_date or default_trial_end(reference_date or date.today())
            free_user = self._free_user(email)
            if free_user is None:
                self.db.add(FreeUser(email=email, trial_end_date=trial_end))
            else:
                free_user.trial_end_date = trial_end
        elif role == UserRole.SUBSCRIBER:
            if self._free_user(email) is not None:
                raise ConflictError(f"User {email} is a free user and cannot also be a subscriber")
            if self._subscriber(email) is None:
                self.db.add(Subscriber(email=email))
        self.db.flush()

    def remove(self, email: str) -> Dict[str, int]:
        """
        Drop whatever specialization the user holds.

        Dropping a subscriber also removes its billing addresses, payment
        methods and the subscriptions it owns.

        Returns:
            Dict[str, int]: Rows removed per table
        """
        counts: Dict[str, int] = {}
        owned = self.owned_subscription_ids(email)
        self.cascade.run(Subscriber, Subscriber.email == email, counts)
        self.cascade.run(FreeUser, FreeUser.email == email, counts)
        if owned:
            self.cascade.run(Subscription, Subscription.sub_id.in_(owned), counts)
        return counts

    def promote_to_subscriber(self, email: str) -> None:
        """Make the user a subscriber, ending a free trial if there is one."""
        if self._free_user(email) is not None:
            self.cascade.run(FreeUser, FreeUser.email == email)
            logger.info(f"Ended free trial of {email} on subscription")
        self.assign(email, UserRole.SUBSCRIBER)

    def owned_subscription_ids(self, email: str):
        rows = (
            self.db.query(SubscriptionOwnerLink.sub_id)
            .filter(SubscriptionOwnerLink.email == email)
            .all()
        )
        return [row.sub_id for row in rows]

    def _subscriber(self, email: str) -> Optional[Subscriber]:
        return self.db.query(Subscriber).filter(Subscriber.email == email).first()

    def _free_user(self, email: str) -> Optional[FreeUser]:
        return self.db.query(FreeUser).filter(FreeUser.email == email).first()
