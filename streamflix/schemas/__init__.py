"""
Schemas package initialization.
"""
from streamflix.schemas.base import BaseSchema, OperationResult

from streamflix.schemas.user import User, UserCreate, UserUpdate, RoleChange
from streamflix.schemas.subscription import (
    Subscription,
    SubscriptionCreate,
    SubscriptionUpdate,
    SubscriptionCreated,
    BillingAddress,
    BillingAddressIn,
    PaymentMethod,
    PaymentMethodIn,
    Plan,
    mask_card_number,
)
from streamflix.schemas.movie import (
    Movie,
    MovieCreate,
    MovieUpdate,
    MovieCreated,
    MovieDeleted,
    Rating,
    RatingCreate,
    RatingCreated,
    Watch,
    WatchCreate,
)
from streamflix.schemas.dump import DataSnapshot, DumpImportRequest

__all__ = [
    "BaseSchema",
    "OperationResult",
    "User",
    "UserCreate",
    "UserUpdate",
    "RoleChange",
    "Subscription",
    "SubscriptionCreate",
    "SubscriptionUpdate",
    "SubscriptionCreated",
    "BillingAddress",
    "BillingAddressIn",
    "PaymentMethod",
    "PaymentMethodIn",
    "Plan",
    "mask_card_number",
    "Movie",
    "MovieCreate",
    "MovieUpdate",
    "MovieCreated",
    "MovieDeleted",
    "Rating",
    "RatingCreate",
    "RatingCreated",
    "Watch",
    "WatchCreate",
    "DataSnapshot",
    "DumpImportRequest",
]
