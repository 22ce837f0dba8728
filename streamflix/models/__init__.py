"""
Models package initialization.
"""

from streamflix.models.base import BaseModel
from streamflix.models.user import (
    User,
    UserPhone,
    FreeUser,
    Subscriber,
    BillingAddress,
    PaymentMethod,
    UserRole,
)
from streamflix.models.subscription import (
    Plan,
    Subscription,
    SubscriptionPlanLink,
    SubscriptionOwnerLink,
    SubscriptionStatus,
)
from streamflix.models.movie import Movie, Rating, ReviewText, WatchRecord
from streamflix.models.sequence import IdSequence

__all__ = [
    "BaseModel",
    "User",
    "UserPhone",
    "FreeUser",
    "Subscriber",
    "BillingAddress",
    "PaymentMethod",
    "UserRole",
    "Plan",
    "Subscription",
    "SubscriptionPlanLink",
    "SubscriptionOwnerLink",
    "SubscriptionStatus",
    "Movie",
    "Rating",
    "ReviewText",
    "WatchRecord",
    "IdSequence",
]
