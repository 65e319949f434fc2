"""
User model, the owner of tasks.

Users are managed by the surrounding application (registration,
authentication). The task store only needs the ``users`` table to exist so
that ``tasks.user_id`` has something to reference.
"""

from sqlalchemy import Column, Index, String
from sqlalchemy.orm import relationship

from app.models.base import Base, IntegerIDMixin, TimestampMixin


class User(Base, IntegerIDMixin, TimestampMixin):
    """
    Account that owns tasks.

    Deleting a user removes all of their tasks. The removal is done by the
    database (``ON DELETE CASCADE``), so the relationship below is passive and
    never loads the tasks just to delete them.
    """

    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    name = Column(
        String(255),
        nullable=False,
        comment="Display name of the user",
    )

    email = Column(
        String(255),
        nullable=False,
        comment="Unique email address used to identify the user",
    )

    tasks = relationship(
        "Task",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
        doc="Tasks owned by this user",
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
