"""SQLAlchemy Declarative Base — Base plus the created_at column every table carries.

Invariants:
    - All models inherit from Base
    - created_at is filled client-side by the ORM and server-side (now()) for
      statements that omit it (UNNEST, COPY)
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all paradigm ORM models."""
    pass


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
