"""
Identifier sequence model.
"""
from sqlalchemy import Column, Integer, String

from streamflix.models.base import BaseModel


class IdSequence(BaseModel):
    """
    Last identifier issued for a scope.

    Global scopes use scope_key 0; the rating scope is keyed by movie id.
    """
    __tablename__ = "id_sequences"

    scope = Column(String(50), primary_key=True)
    scope_key = Column(Integer, primary_key=True, default=0)
    last_value = Column(Integer, nullable=False, default=0)
