"""
Rating service module.
"""
import logging
import math
from datetime import date
from typing import Tuple

from streamflix.core.exceptions import NotFoundError, ValidationError
from streamflix.models.movie import Movie, Rating, ReviewText
from streamflix.schemas.movie import RatingCreate
from streamflix.services.base import BaseService
from streamflix.services.sequences import IdAllocator

logger = logging.getLogger(__name__)

MIN_STARS = 0.0
MAX_STARS = 5.0


class RatingService(BaseService):
    """
    Service for creating ratings.
    """

    def create_rating(self, rating_data: RatingCreate) -> Tuple[int, int]:
        """
        Rate a movie, dated today, with an optional review text.

        Args:
            rating_data: The rating data

        Returns:
            Tuple[int, int]: The movie id and the new rating id

        Raises:
            ValidationError: If stars is outside [0, 5]
            NotFoundError: If the movie or user does not exist
        """
        stars = rating_data.stars
        if stars is None or math.isnan(stars) or not MIN_STARS <= stars <= MAX_STARS:
            raise ValidationError(f"stars must be between {MIN_STARS:g} and {MAX_STARS:g}, got {stars}")

        movie_id = rating_data.movie_id
        email = str(rating_data.user_email)

        with self.transaction("create rating"):
            if not self.db.query(Movie).filter(Movie.movie_id == movie_id).first():
                raise NotFoundError("Movie", movie_id)
            self._get_user(email)

            rating_id = IdAllocator(self.db).next_rating_id(movie_id)
            self.db.add(
                Rating(
                    movie_id=movie_id,
                    rating_id=rating_id,
                    user_email=email,
                    stars=stars,
                    rating_date=date.today(),
                )
            )
            self.db.flush()

            if rating_data.review_text:
                self.db.add(
                    ReviewText(movie_id=movie_id, rating_id=rating_id, review_text=rating_data.review_text)
                )

        logger.info(f"Created rating {movie_id}/{rating_id} by {email}")
        return movie_id, rating_id
