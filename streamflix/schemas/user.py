"""
User schemas module.
"""
from datetime import date
from typing import List, Optional
from pydantic import EmailStr, Field, field_validator

from streamflix.models.user import UserRole
from streamflix.schemas.base import BaseSchema


class UserBase(BaseSchema):
    """Base user schema."""
    first_name: str = Field(..., min_length=1)
    middle_name: Optional[str] = None
    last_name: str = Field(..., min_length=1)
    birth_date: Optional[date] = None


class UserCreate(UserBase):
    """Schema for user creation."""
    email: EmailStr
    sign_up_date: Optional[date] = None
    user_type: UserRole = UserRole.FREE_USER
    phone_number: Optional[str] = None
    trial_end_date: Optional[date] = None

    @field_validator("phone_number", mode="before")
    @classmethod
    def phone_to_str(cls, v):
        # The dashboard sends phone numbers as integers
        return v if v is None or isinstance(v, str) else str(v)


class UserUpdate(BaseSchema):
    """
    Schema for user update.
    Only fields present in the payload are written. A present phone number,
    even null, replaces the user's phone set.
    """
    first_name: Optional[str] = Field(None, min_length=1)
    middle_name: Optional[str] = None
    last_name: Optional[str] = Field(None, min_length=1)
    birth_date: Optional[date] = None
    phone_number: Optional[str] = None

    @field_validator("phone_number", mode="before")
    @classmethod
    def phone_to_str(cls, v):
        return v if v is None or isinstance(v, str) else str(v)


class RoleChange(BaseSchema):
    """Schema for switching a user's role."""
    user_type: UserRole
    trial_end_date: Optional[date] = None


class User(BaseSchema):
    """Schema for user response."""
    email: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    birth_date: Optional[date] = None
    sign_up_date: date
    user_type: UserRole
    status: str = "active"
    trial_end_date: Optional[date] = None
    phone_numbers: List[str] = []
