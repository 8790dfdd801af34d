"""Organization team database models."""
from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Dict, List, Optional

from .base import Base, IntegerIDModel


class TeamModel(IntegerIDModel):
    """Team database model."""
    __tablename__ = "teams"

    org_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    lower_name: Mapped[str] = mapped_column(String(255), nullable=False)
    access_mode: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    includes_all_repositories: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )
    # {"<unit type>": <access mode>}; NULL grants access_mode on every unit
    units: Mapped[Optional[Dict[str, int]]] = mapped_column(JSON, nullable=True)

    members: Mapped[List["TeamMemberModel"]] = relationship(
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    repositories: Mapped[List["TeamRepoModel"]] = relationship(
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("org_id", "lower_name", name="unique_org_team_name"),
    )


class TeamMemberModel(Base):
    """Membership of a user in a team."""
    __tablename__ = "team_members"

    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"),
        primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )


class TeamRepoModel(Base):
    """Repository a team has been given access to."""
    __tablename__ = "team_repos"

    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"),
        primary_key=True
    )
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )
