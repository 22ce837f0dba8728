"""
Pytest configuration file.
"""
import os
from datetime import date

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEFAULT_PLANS", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from streamflix.db.init_db import seed_default_plans
from streamflix.db.session import Base, get_db
from streamflix.models.user import UserRole
from streamflix.schemas.movie import MovieCreate, RatingCreate
from streamflix.schemas.subscription import SubscriptionCreate
from streamflix.schemas.user import UserCreate
from streamflix.services.movie_service import MovieService
from streamflix.services.rating_service import RatingService
from streamflix.services.subscription_service import SubscriptionService
from streamflix.services.user_service import UserService


# Test database URL
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def engine():
    """Create a fresh in-memory database engine per test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """
    Create a new database session for a test.

    Services commit their own transactions, so every test gets its own
    database instead of an outer transaction to roll back.
    """
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def client(db_session):
    """
    Create a test client with a test database session.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def plans(db_session):
    """Seed the Basic, Standard and Premium plans."""
    seed_default_plans(db_session)


@pytest.fixture
def make_user(db_session):
    """Create users through the user service."""
    def _make_user(email, user_type=UserRole.FREE_USER, **fields):
        data = {
            "email": email,
            "first_name": "Test",
            "last_name": "User",
            "sign_up_date": date(2024, 1, 1),
            "user_type": user_type,
        }
        data.update(fields)
        return UserService(db_session).create_user(UserCreate(**data))

    return _make_user


@pytest.fixture
def make_movie(db_session):
    def _make_movie(title="The Matrix", movie_id=None, **fields):
        return MovieService(db_session).create_movie(MovieCreate(id=movie_id, title=title, **fields))

    return _make_movie


@pytest.fixture
def make_rating(db_session):
    def _make_rating(movie_id, email, stars, review_text=None):
        return RatingService(db_session).create_rating(
            RatingCreate(movie_id=movie_id, user_email=email, stars=stars, review_text=review_text)
        )

    return _make_rating


@pytest.fixture
def make_subscription(db_session, plans):
    def _make_subscription(email, plan_name="Basic", start_date=date(2024, 1, 15), **fields):
        return SubscriptionService(db_session).create_subscription(
            SubscriptionCreate(user_email=email, plan_name=plan_name, start_date=start_date, **fields)
        )

    return _make_subscription
