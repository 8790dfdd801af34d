"""Collaboration database model."""
from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import IntegerIDModel


class CollaborationModel(IntegerIDModel):
    """Direct (repository, user) access grant."""
    __tablename__ = "collaborations"

    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    mode: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    __table_args__ = (
        UniqueConstraint("repo_id", "user_id", name="unique_collaboration"),
    )
