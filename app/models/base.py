"""
Base configurations and mixins for database models.

Provides the declarative ``Base`` shared by every model together with the
mixins for integer primary keys and automatic timestamps.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, inspect
from sqlalchemy.orm import declarative_base, validates
from sqlalchemy.sql.functions import now as db_now


def utcnow() -> datetime:
    return datetime.now(UTC)


class CustomBase:
    """
    Custom base class for SQLAlchemy models with enhanced serialization.

    ``to_dict`` converts a model instance into a plain dictionary of its
    column values, rendering datetimes as ISO 8601 strings.
    """

    def to_dict(self) -> dict:
        d = {}
        if not self:
            return d
        for column in inspect(self).mapper.column_attrs:
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                d[column.key] = value.isoformat()
            else:
                d[column.key] = value
        return d


# Create the base class for all models
Base = declarative_base(cls=CustomBase)


class TimestampMixin:
    """
    Mixin class that adds automatic timestamp management to models.

    ``created_at`` is set when the row is inserted and ``updated_at`` is
    refreshed on every ORM update. Values are produced client side with
    microsecond precision; the server defaults cover rows inserted with raw SQL.
    """

    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=db_now(),
        nullable=False,
        comment="Timestamp when the record was created",
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=db_now(),
        nullable=False,
        comment="Timestamp when the record was last updated",
    )


class IntegerIDMixin:
    """
    Mixin class that adds an auto-incrementing integer primary key.
    """

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing primary key",
    )

    @validates("id")
    def validate_id(self, key, value):
        """Once a row is persisted its id never changes."""
        state = inspect(self)
        if state.has_identity and state.identity != (value,):
            raise ValueError(
                f"id is immutable once assigned: {state.identity[0]} -> {value}"
            )
        return value


__all__ = ["Base", "TimestampMixin", "IntegerIDMixin", "utcnow"]
