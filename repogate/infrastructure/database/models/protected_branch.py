"""Protected branch database model."""
from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from typing import List

from .base import IntegerIDModel


class ProtectedBranchModel(IntegerIDModel):
    """One protection rule; flags and whitelists live in a single row."""
    __tablename__ = "protected_branches"

    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    branch_name: Mapped[str] = mapped_column(String(255), nullable=False)

    can_push: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    enable_whitelist: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    whitelist_user_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)
    whitelist_team_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)
    whitelist_deploy_keys: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    enable_merge_whitelist: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    merge_whitelist_user_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)
    merge_whitelist_team_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)

    required_approvals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    enable_approvals_whitelist: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approvals_whitelist_user_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)
    approvals_whitelist_team_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)

    status_check_contexts: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    block_on_rejected_reviews: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    block_on_official_review_requests: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    dismiss_stale_approvals: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    require_signed_commits: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    block_on_outdated_branch: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ';'-separated glob lists
    protected_file_patterns: Mapped[str] = mapped_column(Text, default="", nullable=False)
    unprotected_file_patterns: Mapped[str] = mapped_column(Text, default="", nullable=False)

    __table_args__ = (
        UniqueConstraint("repo_id", "branch_name", name="unique_repo_branch"),
    )
