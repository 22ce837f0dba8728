"""
Base model for all models.
"""
from typing import Any, Dict

from sqlalchemy import inspect

from streamflix.db.session import Base


class BaseModel(Base):
    """
    Base class for all models.
    Tables in this schema use natural keys, so no surrogate id is added here.
    """
    __abstract__ = True

    def to_dict(self) -> Dict[str, Any]:
        """Return the row's column values keyed by attribute name."""
        mapper = inspect(type(self))
        return {attr.key: getattr(self, attr.key) for attr in mapper.column_attrs}

    def __repr__(self):
        identity = inspect(self).identity
        key = identity if identity is None or len(identity) > 1 else identity[0]
        return f"<{type(self).__name__} {key}>"
