"""
Movie service module.

Provides the write operations for movies and watch records.
"""
import logging
from typing import Tuple

from sqlalchemy.exc import IntegrityError

from streamflix.core.exceptions import ConflictError, NotFoundError, ValidationError
from streamflix.models.movie import Movie, WatchRecord
from streamflix.schemas.movie import MovieCreate, MovieUpdate
from streamflix.services.base import BaseService
from streamflix.services.cascade import CascadeDelete
from streamflix.services.sequences import IdAllocator

logger = logging.getLogger(__name__)


class MovieService(BaseService):
    """
    Service for movie lifecycle operations.
    """

    def create_movie(self, movie_data: MovieCreate) -> int:
        """
        Create a movie.

        Args:
            movie_data: The movie data; without an id the next free one is used

        Returns:
            int: The movie id

        Raises:
            ConflictError: If the id is already taken
        """
        with self.transaction("create movie"):
            if movie_data.id is not None:
                if self.db.query(Movie).filter(Movie.movie_id == movie_data.id).first():
                    raise ConflictError(f"Movie already exists: {movie_data.id}")
                movie_id = movie_data.id
            else:
                movie_id = IdAllocator(self.db).next_movie_id()

            self.db.add(
                Movie(
                    movie_id=movie_id,
                    title=movie_data.title,
                    production_company=movie_data.production_company,
                    length=movie_data.length,
                    release_year=movie_data.release_year,
                    genre=movie_data.genre,
                )
            )
            try:
                self.db.flush()
            except IntegrityError as e:
                raise ConflictError(f"Movie already exists: {movie_id}") from e

        logger.info(f"Created movie {movie_id}: {movie_data.title}")
        return movie_id

    def update_movie(self, movie_id: int, movie_data: MovieUpdate) -> Movie:
        """Overwrite the fields present in ``movie_data``."""
        fields = movie_data.model_dump(exclude_unset=True)

        with self.transaction("update movie"):
            movie = self._get_movie(movie_id)
            if "title" in fields and not fields["title"]:
                raise ValidationError("title cannot be empty")
            for key, value in fields.items():
                setattr(movie, key, value)

        logger.info(f"Updated movie {movie_id}")
        return movie

    def delete_movie(self, movie_id: int) -> Tuple[int, int]:
        """
        Delete a movie with its review texts, ratings and watch records.

        Args:
            movie_id: The movie id

        Returns:
            Tuple[int, int]: Ratings removed, watch records removed

        Raises:
            NotFoundError: If the movie does not exist
        """
        with self.transaction("delete movie"):
            self._get_movie(movie_id)
            counts = CascadeDelete(self.db).run(Movie, Movie.movie_id == movie_id)

        ratings_removed = counts.get("ratings", 0)
        watches_removed = counts.get("watch_records", 0)
        logger.info(
            f"Deleted movie {movie_id} with {ratings_removed} rating(s) "
            f"and {watches_removed} watch record(s)"
        )
        return ratings_removed, watches_removed

    def record_watch(self, email: str, movie_id: int) -> bool:
        """
        Record that a user watched a movie.

        Returns:
            bool: False if the pair was already recorded
        """
        with self.transaction("record watch"):
            self._get_user(email)
            self._get_movie(movie_id)
            exists = (
                self.db.query(WatchRecord)
                .filter(WatchRecord.email == email, WatchRecord.movie_id == movie_id)
                .first()
            )
            if exists:
                return False
            self.db.add(WatchRecord(email=email, movie_id=movie_id))

        logger.info(f"Recorded watch of movie {movie_id} by {email}")
        return True

    def _get_movie(self, movie_id: int) -> Movie:
        movie = self.db.query(Movie).filter(Movie.movie_id == movie_id).first()
        if not movie:
            logger.warning(f"Movie not found: {movie_id}")
            raise NotFoundError("Movie", movie_id)
        return movie
