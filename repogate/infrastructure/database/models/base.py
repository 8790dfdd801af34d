"""Base model classes for database entities."""
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import DateTime, Integer, func
from datetime import datetime


class Base(DeclarativeBase):
    """Base model class for all database models."""
    pass


class TimestampedModel(Base):
    """Base model with timestamps."""
    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class IntegerIDModel(TimestampedModel):
    """Base model with an integer primary key and timestamps."""
    __abstract__ = True

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )
