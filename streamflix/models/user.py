"""
User models module.
Defines the user entity, its role specializations and its owned records.
"""
import enum
from sqlalchemy import Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from streamflix.db.custom_types import DigitString
from streamflix.models.base import BaseModel


class UserRole(str, enum.Enum):
    """
    Role variant of a user.
    A user is a subscriber, a free user, or neither.
    """
    SUBSCRIBER = "subscriber"
    FREE_USER = "free_user"
    USER = "user"


class User(BaseModel):
    """
    User model keyed by email.
    """
    __tablename__ = "users"

    email = Column(String(255), primary_key=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100))
    last_name = Column(String(100), nullable=False)
    birth_date = Column(Date)
    sign_up_date = Column(Date, nullable=False)

    phones = relationship("UserPhone", back_populates="user", order_by="UserPhone.phone_number")
    free_user = relationship("FreeUser", back_populates="user", uselist=False)
    subscriber = relationship("Subscriber", back_populates="user", uselist=False)

    @property
    def role(self) -> UserRole:
        """Role tag, subscriber taking precedence over free user."""
        if self.subscriber is not None:
            return UserRole.SUBSCRIBER
        if self.free_user is not None:
            return UserRole.FREE_USER
        return UserRole.USER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class UserPhone(BaseModel):
    __tablename__ = "user_phones"

    email = Column(String(255), ForeignKey("users.email"), primary_key=True)
    phone_number = Column(DigitString(20), primary_key=True)

    user = relationship("User", back_populates="phones")


class FreeUser(BaseModel):
    """
    Free user specialization. Exists only while the user is not a subscriber.
    """
    __tablename__ = "free_users"

    email = Column(String(255), ForeignKey("users.email"), primary_key=True)
    trial_end_date = Column(Date, nullable=False)

    user = relationship("User", back_populates="free_user")


class Subscriber(BaseModel):
    """
    Subscriber specialization. Billing, payment and ownership rows hang off it.
    """
    __tablename__ = "subscribers"

    email = Column(String(255), ForeignKey("users.email"), primary_key=True)

    user = relationship("User", back_populates="subscriber")
    billing_addresses = relationship(
        "BillingAddress", back_populates="subscriber", order_by="BillingAddress.id"
    )
    payment_methods = relationship(
        "PaymentMethod", back_populates="subscriber", order_by="PaymentMethod.id"
    )


class BillingAddress(BaseModel):
    __tablename__ = "billing_addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), ForeignKey("subscribers.email"), nullable=False, index=True)
    street = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(50), nullable=False)
    zip_code = Column(String(10), nullable=False)

    subscriber = relationship("Subscriber", back_populates="billing_addresses")


class PaymentMethod(BaseModel):
    """
    Stored card number. Read-side projections only ever see the masked form.
    """
    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), ForeignKey("subscribers.email"), nullable=False, index=True)
    card_number = Column(DigitString(19), nullable=False)

    subscriber = relationship("Subscriber", back_populates="payment_methods")

    def __repr__(self):
        return f"<PaymentMethod {self.email} ****{(self.card_number or '')[-4:]}>"
