"""
Ratings API endpoints.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from streamflix.db.session import get_db
from streamflix.schemas.movie import Rating, RatingCreate, RatingCreated
from streamflix.services.query_service import QueryService
from streamflix.services.rating_service import RatingService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/ratings",
    response_model=List[Rating],
    status_code=status.HTTP_200_OK,
    summary="List ratings",
    description="Returns all ratings with their review text, newest first"
)
def list_ratings(db: Session = Depends(get_db)):
    return QueryService(db).list_ratings()


@router.post(
    "/ratings",
    response_model=RatingCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Rate a movie",
    description="Adds a 0 to 5 star rating dated today, with optional review text"
)
def create_rating(rating_data: RatingCreate, db: Session = Depends(get_db)):
    """
    Rate a movie.

    Args:
        rating_data: Movie, user, stars and optional review text
        db: Database session

    Returns:
        RatingCreated: The movie id and the rating id within that movie

    Raises:
        NotFoundError: If the movie or user does not exist
    """
    movie_id, rating_id = RatingService(db).create_rating(rating_data)
    return RatingCreated(
        message=f"Rating {rating_id} added to movie {movie_id}",
        movie_id=movie_id,
        rating_id=rating_id,
    )
