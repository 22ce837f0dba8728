"""
Tests for the movie and rating services.
"""
import math

import pytest

from streamflix.core.exceptions import ConflictError, NotFoundError, ValidationError
from streamflix.models.movie import Movie, Rating, ReviewText, WatchRecord
from streamflix.models.sequence import IdSequence
from streamflix.schemas.movie import MovieUpdate, RatingCreate
from streamflix.services.movie_service import MovieService
from streamflix.services.query_service import QueryService
from streamflix.services.rating_service import RatingService


def test_movie_ids_are_allocated_sequentially(make_movie):
    assert make_movie("First") == 1
    assert make_movie("Second") == 2


def test_movie_with_given_id_and_allocation_after_it(make_movie):
    assert make_movie("Chosen", movie_id=500) == 500
    assert make_movie("Next") == 501


def test_duplicate_movie_id_conflicts(db_session, make_movie):
    make_movie("Original", movie_id=7)

    with pytest.raises(ConflictError):
        make_movie("Copy", movie_id=7)

    assert db_session.query(Movie).one().title == "Original"


def test_update_movie(db_session, make_movie):
    movie_id = make_movie("Old", genre="Drama")

    MovieService(db_session).update_movie(movie_id, MovieUpdate(title="New"))

    movie = db_session.query(Movie).one()
    assert movie.title == "New"
    assert movie.genre == "Drama"


def test_update_unknown_movie_not_found(db_session):
    with pytest.raises(NotFoundError):
        MovieService(db_session).update_movie(42, MovieUpdate(title="X"))


def test_average_rating(db_session, make_user, make_movie, make_rating):
    """Stars 4, 5 and 3 average to 4.0 over three ratings."""
    for email in ("a@x.com", "b@x.com", "c@x.com"):
        make_user(email)
    movie_id = make_movie("Rated", movie_id=500)

    make_rating(movie_id, "a@x.com", 4)
    make_rating(movie_id, "b@x.com", 5)
    make_rating(movie_id, "c@x.com", 3)

    [movie] = QueryService(db_session).list_movies()
    assert movie.id == 500
    assert movie.average_rating == 4.0
    assert movie.total_ratings == 3


def test_average_rating_rounds_half_up(db_session, make_user, make_movie, make_rating):
    make_user("a@x.com")
    movie_id = make_movie()
    for stars in (4, 4, 4, 5):  # 4.25
        make_rating(movie_id, "a@x.com", stars)

    assert QueryService(db_session).list_movies()[0].average_rating == 4.3


def test_unrated_movie_has_zero_average(db_session, make_movie):
    make_movie()
    [movie] = QueryService(db_session).list_movies()
    assert movie.average_rating == 0.0
    assert movie.total_ratings == 0


def test_rating_ids_are_per_movie(db_session, make_user, make_movie, make_rating):
    make_user("a@x.com")
    first = make_movie("First")
    second = make_movie("Second")

    assert make_rating(first, "a@x.com", 3) == (first, 1)
    assert make_rating(first, "a@x.com", 4) == (first, 2)
    assert make_rating(second, "a@x.com", 5) == (second, 1)


def test_rating_with_review_text(db_session, make_user, make_movie, make_rating):
    make_user("a@x.com")
    movie_id = make_movie()
    make_rating(movie_id, "a@x.com", 5, review_text="Great")
    make_rating(movie_id, "a@x.com", 2)

    assert db_session.query(ReviewText).one().review_text == "Great"
    ratings = QueryService(db_session).list_ratings()
    assert sorted(r.review_text or "" for r in ratings) == ["", "Great"]


@pytest.mark.parametrize("stars", [-0.5, 5.5, math.nan])
def test_stars_out_of_range_rejected(db_session, make_user, make_movie, stars):
    make_user("a@x.com")
    movie_id = make_movie()
    rating = RatingCreate.model_construct(movie_id=movie_id, user_email="a@x.com", stars=stars, review_text=None)

    with pytest.raises(ValidationError):
        RatingService(db_session).create_rating(rating)

    assert db_session.query(Rating).count() == 0


def test_rating_unknown_movie_or_user(db_session, make_user, make_movie, make_rating):
    make_user("a@x.com")
    movie_id = make_movie()

    with pytest.raises(NotFoundError):
        make_rating(999, "a@x.com", 3)
    with pytest.raises(NotFoundError):
        make_rating(movie_id, "nobody@x.com", 3)


def test_delete_movie_removes_ratings_and_watches(db_session, make_user, make_movie, make_rating):
    make_user("a@x.com")
    make_user("b@x.com")
    movie_id = make_movie("Doomed", movie_id=500)
    other = make_movie("Kept")
    make_rating(movie_id, "a@x.com", 4, review_text="ok")
    make_rating(movie_id, "b@x.com", 5)
    make_rating(other, "a@x.com", 3)
    service = MovieService(db_session)
    service.record_watch("a@x.com", movie_id)
    service.record_watch("a@x.com", other)

    assert service.delete_movie(movie_id) == (2, 1)

    assert db_session.query(Movie).filter(Movie.movie_id == movie_id).count() == 0
    assert db_session.query(Rating).filter(Rating.movie_id == movie_id).count() == 0
    assert db_session.query(ReviewText).count() == 0
    assert db_session.query(WatchRecord).filter(WatchRecord.movie_id == movie_id).count() == 0
    assert db_session.query(Rating).count() == 1
    assert db_session.query(WatchRecord).count() == 1


def test_delete_unknown_movie_not_found(db_session):
    with pytest.raises(NotFoundError):
        MovieService(db_session).delete_movie(12345)


def test_recreated_movie_restarts_rating_ids(db_session, make_user, make_movie, make_rating):
    make_user("a@x.com")
    make_movie("Once", movie_id=10)
    make_rating(10, "a@x.com", 3)
    make_rating(10, "a@x.com", 4)

    MovieService(db_session).delete_movie(10)
    assert db_session.query(IdSequence).filter(IdSequence.scope_key == 10).count() == 0

    make_movie("Again", movie_id=10)
    assert make_rating(10, "a@x.com", 5) == (10, 1)


def test_record_watch_is_idempotent(db_session, make_user, make_movie):
    make_user("a@x.com")
    movie_id = make_movie()
    service = MovieService(db_session)

    assert service.record_watch("a@x.com", movie_id) is True
    assert service.record_watch("a@x.com", movie_id) is False
    assert db_session.query(WatchRecord).count() == 1


def test_record_watch_unknown_movie(db_session, make_user):
    make_user("a@x.com")
    with pytest.raises(NotFoundError):
        MovieService(db_session).record_watch("a@x.com", 1)
