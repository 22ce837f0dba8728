"""
SQL dump import schemas module.
"""
from typing import List
from pydantic import Field

from streamflix.schemas.base import BaseSchema
from streamflix.schemas.movie import Movie, Rating, Watch
from streamflix.schemas.subscription import Plan, Subscription
from streamflix.schemas.user import User


class DumpImportRequest(BaseSchema):
    """Raw SQL dump text."""
    sql: str = Field(..., min_length=1)


class DataSnapshot(BaseSchema):
    """
    Entity collections built from a dump, shaped like the list endpoints.
    """
    users: List[User] = []
    movies: List[Movie] = []
    plans: List[Plan] = []
    subscriptions: List[Subscription] = []
    ratings: List[Rating] = []
    watches: List[Watch] = []
