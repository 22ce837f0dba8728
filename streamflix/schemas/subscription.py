"""
Subscription schemas module.
"""
from datetime import date
from typing import Optional
from pydantic import EmailStr, Field, field_validator

from streamflix.models.subscription import SubscriptionStatus
from streamflix.schemas.base import BaseSchema, OperationResult

CARD_MASK_PREFIX = "****-****-****-"


def mask_card_number(card_number: Optional[str]) -> str:
    """
    Mask a card number down to its last four digits.

    Args:
        card_number: The stored card number

    Returns:
        str: "****-****-****-" followed by the last four digits
    """
    digits = "".join(ch for ch in str(card_number or "") if ch.isdigit())
    return CARD_MASK_PREFIX + (digits[-4:] if digits else "0000")


class BillingAddressIn(BaseSchema):
    """Billing address supplied with a subscription."""
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)

    @field_validator("zip_code", mode="before")
    @classmethod
    def zip_to_str(cls, v):
        return v if v is None or isinstance(v, str) else str(v)


class PaymentMethodIn(BaseSchema):
    """Card supplied with a subscription. Stored in full, never echoed back."""
    card_number: str

    @field_validator("card_number", mode="before")
    @classmethod
    def card_to_str(cls, v):
        return v if v is None or isinstance(v, str) else str(v)


class SubscriptionCreate(BaseSchema):
    """Schema for subscription creation."""
    user_email: EmailStr
    plan_name: str
    start_date: Optional[date] = None
    billing_address: Optional[BillingAddressIn] = None
    payment_method: Optional[PaymentMethodIn] = None


class SubscriptionUpdate(BaseSchema):
    """Schema for subscription update. End date always follows start date."""
    plan_name: Optional[str] = None
    start_date: Optional[date] = None
    status: Optional[SubscriptionStatus] = None
    billing_address: Optional[BillingAddressIn] = None
    payment_method: Optional[PaymentMethodIn] = None


class SubscriptionCreated(OperationResult):
    sub_id: int


class BillingAddress(BaseSchema):
    street: str
    city: str
    state: str
    zip_code: str


class PaymentMethod(BaseSchema):
    """Masked payment method projection."""
    type: str = "Credit Card"
    card_number: str
    card_holder: str = "N/A"


PLACEHOLDER_BILLING_ADDRESS = BillingAddress(street="N/A", city="N/A", state="N/A", zip_code="00000")


class Subscription(BaseSchema):
    """Schema for subscription response."""
    id: int
    user_email: str
    plan_name: str
    status: SubscriptionStatus
    start_date: date
    end_date: date
    monthly_price: float
    max_screens: int
    billing_address: BillingAddress
    payment_method: PaymentMethod


class Plan(BaseSchema):
    plan_name: str
    max_screens: int
    monthly_price: float
