"""User and organization database model."""
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from .base import IntegerIDModel


class UserModel(IntegerIDModel):
    """User database model; organizations share the table."""
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(40),
        unique=True,
        nullable=False,
        index=True
    )
    lower_name: Mapped[str] = mapped_column(
        String(40),
        unique=True,
        nullable=False,
        index=True
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )
    is_organization: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )
