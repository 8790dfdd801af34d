"""Repository and repository unit database models."""
from sqlalchemy import String, Boolean, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import List, TYPE_CHECKING

from .base import Base, IntegerIDModel

if TYPE_CHECKING:
    from .user import UserModel


class RepositoryModel(IntegerIDModel):
    """Repository database model."""
    __tablename__ = "repositories"

    name: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )
    is_private: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True
    )
    default_branch: Mapped[str] = mapped_column(
        String(255),
        default="main",
        nullable=False
    )

    owner: Mapped["UserModel"] = relationship(lazy="joined")
    units: Mapped[List["RepoUnitModel"]] = relationship(
        back_populates="repository",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="unique_owner_repo_name"),
    )


class RepoUnitModel(Base):
    """An enabled unit of a repository."""
    __tablename__ = "repo_units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type: Mapped[int] = mapped_column(Integer, nullable=False)

    repository: Mapped["RepositoryModel"] = relationship(back_populates="units")

    __table_args__ = (
        UniqueConstraint("repo_id", "type", name="unique_repo_unit"),
    )
