"""
Custom database types.
"""
import re
from sqlalchemy import TypeDecorator, String

_NON_DIGITS = re.compile(r"\D")


class DigitString(TypeDecorator):
    """
    String column holding digits only.
    Separators such as spaces, dashes and parentheses are stripped on write,
    so "4111-1111 1111-1111" is stored as "4111111111111111".
    """
    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Strip everything but digits when saving to database."""
        if value is None:
            return value
        return _NON_DIGITS.sub("", str(value))

    def process_result_value(self, value, dialect):
        """Return stored digits as a string."""
        if value is None:
            return value
        return str(value)
