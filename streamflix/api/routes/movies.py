"""
Movies and watch history API endpoints.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from streamflix.db.session import get_db
from streamflix.schemas.base import OperationResult
from streamflix.schemas.movie import (
    Movie,
    MovieCreate,
    MovieCreated,
    MovieDeleted,
    MovieUpdate,
    Watch,
    WatchCreate,
)
from streamflix.services.movie_service import MovieService
from streamflix.services.query_service import QueryService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/movies",
    response_model=List[Movie],
    status_code=status.HTTP_200_OK,
    summary="List movies",
    description="Returns all movies with average rating and rating count"
)
def list_movies(db: Session = Depends(get_db)):
    return QueryService(db).list_movies()


@router.post(
    "/movies",
    response_model=MovieCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create a movie",
    description="Creates a movie, allocating the next id when none is given"
)
def create_movie(movie_data: MovieCreate, db: Session = Depends(get_db)):
    """
    Create a movie.

    Args:
        movie_data: The movie data
        db: Database session

    Returns:
        MovieCreated: The movie id

    Raises:
        ConflictError: If the given id is taken
    """
    movie_id = MovieService(db).create_movie(movie_data)
    return MovieCreated(message=f"Movie {movie_id} created", id=movie_id)


@router.put(
    "/movies/{movie_id}",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
    summary="Update a movie"
)
def update_movie(movie_id: int, movie_data: MovieUpdate, db: Session = Depends(get_db)):
    MovieService(db).update_movie(movie_id, movie_data)
    return OperationResult(message=f"Movie {movie_id} updated")


@router.delete(
    "/movies/{movie_id}",
    response_model=MovieDeleted,
    status_code=status.HTTP_200_OK,
    summary="Delete a movie",
    description="Deletes a movie with its ratings, review texts and watch records"
)
def delete_movie(movie_id: int, db: Session = Depends(get_db)):
    """
    Delete a movie.

    Args:
        movie_id: The movie id
        db: Database session

    Returns:
        MovieDeleted: How many ratings and watch records were removed

    Raises:
        NotFoundError: If the movie does not exist
    """
    ratings_removed, watches_removed = MovieService(db).delete_movie(movie_id)
    return MovieDeleted(
        message=f"Movie {movie_id} deleted",
        ratings_removed=ratings_removed,
        watch_records_removed=watches_removed,
    )


@router.get(
    "/watches",
    response_model=List[Watch],
    status_code=status.HTTP_200_OK,
    summary="List watch records"
)
def list_watches(db: Session = Depends(get_db)):
    return QueryService(db).list_watches()


@router.post(
    "/watches",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Record a watch",
    description="Records that a user watched a movie; repeating a pair is a no-op"
)
def record_watch(watch: WatchCreate, db: Session = Depends(get_db)):
    created = MovieService(db).record_watch(str(watch.email), watch.movie_id)
    if not created:
        return OperationResult(message=f"Watch of movie {watch.movie_id} by {watch.email} already recorded")
    return OperationResult(message=f"Watch of movie {watch.movie_id} by {watch.email} recorded")
