"""
Subscription service module.

Provides services for creating and editing subscriptions.
"""
import logging
import re
from datetime import date
from typing import Optional

from streamflix.core.exceptions import ConflictError, NotFoundError, ValidationError
from streamflix.models.subscription import Plan
from streamflix.models.subscription import Subscription as SubscriptionModel
from streamflix.models.subscription import (
    SubscriptionOwnerLink,
    SubscriptionPlanLink,
    SubscriptionStatus,
)
from streamflix.models.user import BillingAddress, PaymentMethod
from streamflix.schemas.subscription import (
    BillingAddressIn,
    PaymentMethodIn,
    SubscriptionCreate,
    SubscriptionUpdate,
)
from streamflix.services.base import BaseService
from streamflix.services.roles import RoleManager
from streamflix.services.sequences import IdAllocator

logger = logging.getLogger(__name__)

SUBSCRIPTION_TERM_YEARS = 1


def subscription_end_date(start_date: date, years: int = SUBSCRIPTION_TERM_YEARS) -> date:
    """
    Return the date ``years`` years after ``start_date``.

    A February 29 start has no anniversary in a common year and ends on
    February 28.
    """
    try:
        return start_date.replace(year=start_date.year + years)
    except ValueError:
        return start_date.replace(year=start_date.year + years, day=28)


def card_digits(payment_method: PaymentMethodIn) -> str:
    digits = re.sub(r"\D", "", payment_method.card_number or "")
    if len(digits) < 4:
        raise ValidationError("Card number must contain at least 4 digits")
    return digits


class SubscriptionService(BaseService):
    """
    Service for subscription-related operations.
    """

    def create_subscription(self, subscription_data: SubscriptionCreate) -> int:
        """
        Create a subscription for a user.

        Allocates the next subscription id, makes the user a subscriber if
        needed, links owner and plan, and stores the optional billing address
        and payment method.

        Args:
            subscription_data: The subscription data

        Returns:
            int: The new subscription id

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If the plan is unknown or the card number is invalid
            ConflictError: If the user already owns an active subscription
            TransactionError: If the store fails mid-write
        """
        email = str(subscription_data.user_email)
        start_date = subscription_data.start_date or date.today()

        with self.transaction("create subscription"):
            self._get_user(email)
            self._get_plan(subscription_data.plan_name)
            card_number = (
                card_digits(subscription_data.payment_method)
                if subscription_data.payment_method
                else None
            )

            if self._active_subscription(email) is not None:
                raise ConflictError(f"User {email} already has an active subscription")

            sub_id = IdAllocator(self.db).next_subscription_id()
            RoleManager(self.db).promote_to_subscriber(email)

            self.db.add(
                SubscriptionModel(
                    sub_id=sub_id,
                    start_date=start_date,
                    end_date=subscription_end_date(start_date),
                    status=SubscriptionStatus.ACTIVE,
                )
            )
            self.db.flush()

            self.db.add(SubscriptionOwnerLink(email=email, sub_id=sub_id))
            self.db.add(SubscriptionPlanLink(sub_id=sub_id, plan_name=subscription_data.plan_name))
            self.db.flush()

            if subscription_data.billing_address:
                self._add_billing_address(email, subscription_data.billing_address)
            if card_number:
                self._add_payment_method(email, card_number)

        logger.info(f"Created subscription {sub_id} for user {email}, plan {subscription_data.plan_name}")
        return sub_id

    def update_subscription(self, sub_id: int, subscription_data: SubscriptionUpdate) -> SubscriptionModel:
        """
        Update a subscription.

        A new start date always moves the end date with it. A billing address
        or payment method in the payload replaces the owner's existing ones.

        Args:
            sub_id: The subscription id
            subscription_data: The data to update

        Returns:
            SubscriptionModel: The updated subscription

        Raises:
            NotFoundError: If the subscription is not found
            ValidationError: If the plan is unknown or the card number is invalid
            ConflictError: If reactivating would give the owner a second active subscription
        """
        with self.transaction("update subscription"):
            subscription = (
                self.db.query(SubscriptionModel).filter(SubscriptionModel.sub_id == sub_id).first()
            )
            if not subscription:
                logger.warning(f"Subscription not found: {sub_id}")
                raise NotFoundError("Subscription", sub_id)

            if subscription_data.plan_name is not None:
                self._get_plan(subscription_data.plan_name)
                if subscription.plan_link is None:
                    self.db.add(SubscriptionPlanLink(sub_id=sub_id, plan_name=subscription_data.plan_name))
                else:
                    subscription.plan_link.plan_name = subscription_data.plan_name

            if subscription_data.start_date is not None:
                subscription.start_date = subscription_data.start_date
                subscription.end_date = subscription_end_date(subscription_data.start_date)

            if subscription_data.status is not None:
                if subscription_data.status == SubscriptionStatus.ACTIVE and subscription.owner_link is not None:
                    owner = subscription.owner_link.email
                    if self._active_subscription(owner, exclude_sub_id=sub_id) is not None:
                        raise ConflictError(f"User {owner} already has an active subscription")
                subscription.status = subscription_data.status

            if subscription_data.billing_address or subscription_data.payment_method:
                if subscription.owner_link is None:
                    raise ValidationError(f"Subscription {sub_id} has no owner to bill")
                owner = subscription.owner_link.email

                if subscription_data.billing_address:
                    self.db.query(BillingAddress).filter(BillingAddress.email == owner).delete(
                        synchronize_session=False
                    )
                    self._add_billing_address(owner, subscription_data.billing_address)
                if subscription_data.payment_method:
                    card_number = card_digits(subscription_data.payment_method)
                    self.db.query(PaymentMethod).filter(PaymentMethod.email == owner).delete(
                        synchronize_session=False
                    )
                    self._add_payment_method(owner, card_number)

        logger.info(f"Updated subscription {sub_id}")
        return subscription

    def _get_plan(self, plan_name: str) -> Plan:
        plan = self.db.query(Plan).filter(Plan.plan_name == plan_name).first()
        if not plan:
            raise ValidationError(f"Unknown plan: {plan_name}")
        return plan

    def _active_subscription(
        self, email: str, exclude_sub_id: Optional[int] = None
    ) -> Optional[SubscriptionModel]:
        query = (
            self.db.query(SubscriptionModel)
            .join(SubscriptionOwnerLink, SubscriptionOwnerLink.sub_id == SubscriptionModel.sub_id)
            .filter(
                SubscriptionOwnerLink.email == email,
                SubscriptionModel.status == SubscriptionStatus.ACTIVE,
            )
        )
        if exclude_sub_id is not None:
            query = query.filter(SubscriptionModel.sub_id != exclude_sub_id)
        return query.first()

    def _add_billing_address(self, email: str, address: BillingAddressIn) -> None:
        self.db.add(
            BillingAddress(
                email=email,
                street=address.street,
                city=address.city,
                state=address.state,
                zip_code=address.zip_code,
            )
        )
        self.db.flush()

    def _add_payment_method(self, email: str, card_number: str) -> None:
        self.db.add(PaymentMethod(email=email, card_number=card_number))
        self.db.flush()
