"""
Movie models module.
Defines movies, their ratings and review texts, and watch records.
"""
from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    Float,
    ForeignKey,
    ForeignKeyConstraint,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from streamflix.models.base import BaseModel


class Movie(BaseModel):
    """
    Movie model. Ids are caller-assigned or taken from the "movie" sequence.
    """
    __tablename__ = "movies"

    movie_id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String(255), nullable=False, index=True)
    production_company = Column(String(255))
    length = Column(Integer)
    release_year = Column(Integer)
    genre = Column(String(50))

    ratings = relationship("Rating", back_populates="movie")


class Rating(BaseModel):
    """
    Rating keyed by (movie_id, rating_id); rating ids restart at 1 per movie.
    """
    __tablename__ = "ratings"
    __table_args__ = (
        CheckConstraint("stars >= 0 AND stars <= 5", name="ck_ratings_stars_range"),
    )

    movie_id = Column(Integer, ForeignKey("movies.movie_id"), primary_key=True)
    rating_id = Column(Integer, primary_key=True, autoincrement=False)
    user_email = Column(String(255), ForeignKey("users.email"), nullable=False, index=True)
    stars = Column(Float, nullable=False)
    rating_date = Column(Date, nullable=False)

    movie = relationship("Movie", back_populates="ratings")
    review = relationship("ReviewText", back_populates="rating", uselist=False)


class ReviewText(BaseModel):
    __tablename__ = "review_texts"
    __table_args__ = (
        ForeignKeyConstraint(
            ["movie_id", "rating_id"],
            ["ratings.movie_id", "ratings.rating_id"],
        ),
    )

    movie_id = Column(Integer, primary_key=True)
    rating_id = Column(Integer, primary_key=True)
    review_text = Column(Text, nullable=False)

    rating = relationship("Rating", back_populates="review")


class WatchRecord(BaseModel):
    """
    "User watched movie" link.
    """
    __tablename__ = "watch_records"

    email = Column(String(255), ForeignKey("users.email"), primary_key=True)
    movie_id = Column(Integer, ForeignKey("movies.movie_id"), primary_key=True)
