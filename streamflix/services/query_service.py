"""
Query service module.

Read-only projections: denormalized views for the dashboard and raw
per-table dumps for inspection. Nothing here writes.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.orm import Session, selectinload

from streamflix.core.exceptions import NotFoundError
from streamflix.models.base import BaseModel
from streamflix.models.movie import Movie, Rating, ReviewText, WatchRecord
from streamflix.models.subscription import (
    Plan,
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
from streamflix.schemas import movie as movie_schemas
from streamflix.schemas import subscription as subscription_schemas
from streamflix.schemas import user as user_schemas
from streamflix.schemas.subscription import PLACEHOLDER_BILLING_ADDRESS, mask_card_number

logger = logging.getLogger(__name__)

# Raw table name -> (model, natural ordering)
TABLES: Dict[str, Tuple[type, Tuple[str, ...]]] = {
    "users": (User, ("email",)),
    "user_phones": (UserPhone, ("email", "phone_number")),
    "free_users": (FreeUser, ("email",)),
    "subscribers": (Subscriber, ("email",)),
    "payment_methods": (PaymentMethod, ("email", "id")),
    "billing_addresses": (BillingAddress, ("email", "id")),
    "plans": (Plan, ("monthly_price", "plan_name")),
    "subscriptions": (Subscription, ("sub_id",)),
    "subscription_owners": (SubscriptionOwnerLink, ("email", "sub_id")),
    "subscription_plans": (SubscriptionPlanLink, ("sub_id",)),
    "movies": (Movie, ("movie_id",)),
    "ratings": (Rating, ("movie_id", "rating_id")),
    "review_texts": (ReviewText, ("movie_id", "rating_id")),
    "watch_records": (WatchRecord, ("email", "movie_id")),
}

# Names the tables had in the legacy schema and its dumps
LEGACY_TABLE_NAMES: Dict[str, str] = {
    "user": "users",
    "user2": "user_phones",
    "free_user": "free_users",
    "subscriber": "subscribers",
    "subscriber2": "payment_methods",
    "subscriber3": "billing_addresses",
    "plan": "plans",
    "subscription": "subscriptions",
    "has": "subscription_owners",
    "to": "subscription_plans",
    "movie": "movies",
    "rating": "ratings",
    "rating2": "review_texts",
    "watches": "watch_records",
}


def table_name(name: str) -> Optional[str]:
    """Resolve a table or legacy table name, ignoring case; None if unknown."""
    name = name.lower()
    if name in TABLES:
        return name
    return LEGACY_TABLE_NAMES.get(name)


def round_rating(value: Optional[float]) -> float:
    """Round an average to one decimal, half up; no ratings means 0."""
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def mask_row(row: Dict[str, Any]) -> Dict[str, Any]:
    if "card_number" in row:
        row = dict(row, card_number=mask_card_number(row["card_number"]))
    return row


def first_by_email(rows: Iterable[Any]) -> Dict[str, Any]:
    """Map each email to the first of its rows."""
    first: Dict[str, Any] = {}
    for row in rows:
        first.setdefault(row.email, row)
    return first


def subscription_view(
    sub_id: int,
    email: str,
    status,
    start_date,
    end_date,
    plan,
    address=None,
    payment=None,
    holder: Optional[str] = None,
) -> subscription_schemas.Subscription:
    """
    Build the subscription projection.

    ``plan``, ``address`` and ``payment`` may be models or any object with
    the same attribute names. A missing address or payment method is shown
    as a placeholder.
    """
    if address is None:
        billing_address = PLACEHOLDER_BILLING_ADDRESS
    else:
        billing_address = subscription_schemas.BillingAddress(
            street=address.street,
            city=address.city,
            state=address.state,
            zip_code=str(address.zip_code),
        )
    payment_method = subscription_schemas.PaymentMethod(
        card_number=mask_card_number(payment.card_number if payment is not None else None),
        card_holder=holder or "N/A",
    )
    return subscription_schemas.Subscription(
        id=sub_id,
        user_email=email,
        plan_name=plan.plan_name,
        status=status,
        start_date=start_date,
        end_date=end_date,
        monthly_price=plan.monthly_price,
        max_screens=plan.max_screens,
        billing_address=billing_address,
        payment_method=payment_method,
    )


class QueryService:
    """
    Service assembling read views.
    """

    def __init__(self, db: Session):
        """
        Initialize the query service.

        Args:
            db: Database session
        """
        self.db = db

    def list_users(self) -> List[user_schemas.User]:
        """Users with role tag and phone numbers, newest sign-up first."""
        users = (
            self.db.query(User)
            .options(
                selectinload(User.phones),
                selectinload(User.free_user),
                selectinload(User.subscriber),
            )
            .order_by(User.sign_up_date.desc(), User.email)
            .all()
        )
        return [
            user_schemas.User(
                email=user.email,
                first_name=user.first_name,
                middle_name=user.middle_name,
                last_name=user.last_name,
                birth_date=user.birth_date,
                sign_up_date=user.sign_up_date,
                user_type=user.role,
                trial_end_date=user.free_user.trial_end_date if user.free_user else None,
                phone_numbers=[phone.phone_number for phone in user.phones],
            )
            for user in users
        ]

    def list_movies(self) -> List[movie_schemas.Movie]:
        """Movies with average stars and rating count, by title."""
        rows = (
            self.db.query(
                Movie,
                func.avg(Rating.stars).label("average"),
                func.count(Rating.rating_id).label("total"),
            )
            .outerjoin(Rating, Rating.movie_id == Movie.movie_id)
            .group_by(
                Movie.movie_id,
                Movie.title,
                Movie.production_company,
                Movie.length,
                Movie.release_year,
                Movie.genre,
            )
            .order_by(Movie.title, Movie.movie_id)
            .all()
        )
        return [
            movie_schemas.Movie(
                id=movie.movie_id,
                title=movie.title,
                production_company=movie.production_company,
                length=movie.length,
                release_year=movie.release_year,
                genre=movie.genre,
                average_rating=round_rating(average),
                total_ratings=total,
            )
            for movie, average, total in rows
        ]

    def list_subscriptions(self) -> List[subscription_schemas.Subscription]:
        """
        Subscriptions joined to owner and plan, newest start first.

        Each carries the owner's first billing address and first payment
        method, the latter masked.
        """
        rows = (
            self.db.query(Subscription, SubscriptionOwnerLink.email, Plan)
            .join(SubscriptionOwnerLink, SubscriptionOwnerLink.sub_id == Subscription.sub_id)
            .join(SubscriptionPlanLink, SubscriptionPlanLink.sub_id == Subscription.sub_id)
            .join(Plan, Plan.plan_name == SubscriptionPlanLink.plan_name)
            .order_by(Subscription.start_date.desc(), Subscription.sub_id.desc())
            .all()
        )
        emails = {email for _, email, _ in rows}
        if not emails:
            return []

        addresses = first_by_email(
            self.db.query(BillingAddress)
            .filter(BillingAddress.email.in_(emails))
            .order_by(BillingAddress.email, BillingAddress.id)
        )
        payments = first_by_email(
            self.db.query(PaymentMethod)
            .filter(PaymentMethod.email.in_(emails))
            .order_by(PaymentMethod.email, PaymentMethod.id)
        )
        holders = {
            user.email: user.full_name
            for user in self.db.query(User).filter(User.email.in_(emails))
        }

        return [
            subscription_view(
                subscription.sub_id,
                email,
                subscription.status,
                subscription.start_date,
                subscription.end_date,
                plan,
                address=addresses.get(email),
                payment=payments.get(email),
                holder=holders.get(email),
            )
            for subscription, email, plan in rows
        ]

    def list_ratings(self) -> List[movie_schemas.Rating]:
        """Ratings with review text, newest first."""
        rows = (
            self.db.query(Rating, ReviewText.review_text)
            .outerjoin(
                ReviewText,
                and_(
                    ReviewText.movie_id == Rating.movie_id,
                    ReviewText.rating_id == Rating.rating_id,
                ),
            )
            .order_by(Rating.rating_date.desc(), Rating.movie_id, Rating.rating_id)
            .all()
        )
        return [
            movie_schemas.Rating(
                movie_id=rating.movie_id,
                rating_id=rating.rating_id,
                user_email=rating.user_email,
                stars=rating.stars,
                rating_date=rating.rating_date,
                review_text=review_text,
            )
            for rating, review_text in rows
        ]

    def list_plans(self) -> List[subscription_schemas.Plan]:
        plans = self.db.query(Plan).order_by(Plan.monthly_price, Plan.plan_name).all()
        return [
            subscription_schemas.Plan(
                plan_name=plan.plan_name,
                max_screens=plan.max_screens,
                monthly_price=plan.monthly_price,
            )
            for plan in plans
        ]

    def list_watches(self) -> List[movie_schemas.Watch]:
        records = self.db.query(WatchRecord).order_by(WatchRecord.email, WatchRecord.movie_id).all()
        return [movie_schemas.Watch(email=record.email, movie_id=record.movie_id) for record in records]

    def dump_table(self, name: str) -> List[Dict[str, Any]]:
        """
        Return every row of a table, ordered by its natural key.

        Card numbers are masked.

        Args:
            name: One of TABLES or LEGACY_TABLE_NAMES

        Returns:
            List[Dict[str, Any]]: Column values per row

        Raises:
            NotFoundError: If the table name is unknown
        """
        resolved = table_name(name)
        if resolved is None:
            raise NotFoundError("Table", name)
        model, ordering = TABLES[resolved]
        rows: Iterable[BaseModel] = (
            self.db.query(model).order_by(*[getattr(model, column) for column in ordering]).all()
        )
        return [mask_row(row.to_dict()) for row in rows]
