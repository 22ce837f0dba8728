"""
Subscription models module.
Defines plans, subscriptions and the links tying them to plans and owners.
"""
import enum
from sqlalchemy import Column, Date, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from streamflix.models.base import BaseModel


class SubscriptionStatus(str, enum.Enum):
    """Subscription status enum."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class Plan(BaseModel):
    """
    Plan reference data.
    """
    __tablename__ = "plans"

    plan_name = Column(String(50), primary_key=True)
    max_screens = Column(Integer, nullable=False)
    monthly_price = Column(Float, nullable=False)


class Subscription(BaseModel):
    """
    Subscription model. The id comes from the "subscription" sequence.
    """
    __tablename__ = "subscriptions"

    sub_id = Column(Integer, primary_key=True, autoincrement=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        Enum(
            SubscriptionStatus,
            name="subscription_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
    )

    plan_link = relationship("SubscriptionPlanLink", back_populates="subscription", uselist=False)
    owner_link = relationship("SubscriptionOwnerLink", back_populates="subscription", uselist=False)


class SubscriptionPlanLink(BaseModel):
    __tablename__ = "subscription_plans"

    sub_id = Column(Integer, ForeignKey("subscriptions.sub_id"), primary_key=True)
    plan_name = Column(String(50), ForeignKey("plans.plan_name"), nullable=False)

    subscription = relationship("Subscription", back_populates="plan_link")
    plan = relationship("Plan")


class SubscriptionOwnerLink(BaseModel):
    __tablename__ = "subscription_owners"

    email = Column(String(255), ForeignKey("subscribers.email"), primary_key=True)
    sub_id = Column(Integer, ForeignKey("subscriptions.sub_id"), primary_key=True)

    subscription = relationship("Subscription", back_populates="owner_link")
