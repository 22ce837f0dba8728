"""
Movie, rating and watch schemas module.
"""
from datetime import date
from typing import Optional
from pydantic import EmailStr, Field

from streamflix.schemas.base import BaseSchema, OperationResult


class MovieCreate(BaseSchema):
    """Schema for movie creation. Omit id to have one allocated."""
    id: Optional[int] = Field(None, ge=1)
    title: str = Field(..., min_length=1)
    production_company: Optional[str] = None
    length: Optional[int] = Field(None, ge=0)
    release_year: Optional[int] = None
    genre: Optional[str] = None


class MovieUpdate(BaseSchema):
    """Schema for movie update. Only fields present in the payload are written."""
    title: Optional[str] = Field(None, min_length=1)
    production_company: Optional[str] = None
    length: Optional[int] = Field(None, ge=0)
    release_year: Optional[int] = None
    genre: Optional[str] = None


class Movie(BaseSchema):
    """Schema for movie response with rating aggregates."""
    id: int
    title: str
    production_company: Optional[str] = None
    length: Optional[int] = None
    release_year: Optional[int] = None
    genre: Optional[str] = None
    average_rating: float = 0.0
    total_ratings: int = 0


class MovieCreated(OperationResult):
    id: int


class MovieDeleted(OperationResult):
    ratings_removed: int = 0
    watch_records_removed: int = 0


class RatingCreate(BaseSchema):
    """Schema for rating creation."""
    movie_id: int
    user_email: EmailStr
    stars: float = Field(..., ge=0, le=5)
    review_text: Optional[str] = None


class RatingCreated(OperationResult):
    movie_id: int
    rating_id: int


class Rating(BaseSchema):
    """Schema for rating response."""
    movie_id: int
    rating_id: int
    user_email: str
    stars: float
    rating_date: date
    review_text: Optional[str] = None


class WatchCreate(BaseSchema):
    email: EmailStr
    movie_id: int


class Watch(BaseSchema):
    email: str
    movie_id: int
