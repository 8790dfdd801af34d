from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReviewState(str, Enum):
    """State of a pull request review"""

    APPROVE = "approve"
    REJECT = "reject"  # changes requested
    COMMENT = "comment"
    REQUEST = "request"  # review requested, not yet submitted


class Review(BaseModel):
    """A review (or pending review request) on the pull request being merged"""

    model_config = ConfigDict(frozen=True)

    reviewer_id: int
    state: ReviewState
    commit_id: Optional[str] = Field(
        default=None, description="Head commit the review was submitted against"
    )
    official: bool = Field(
        default=False, description="Reviewer holds review authority on the target branch"
    )
    dismissed: bool = False
    submitted_at: datetime = Field(default_factory=datetime.utcnow)


class CommitStatusState(str, Enum):
    """State reported by an external check"""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    FAILURE = "failure"
    WARNING = "warning"

    @property
    def is_success(self) -> bool:
        return self is CommitStatusState.SUCCESS


class CommitStatus(BaseModel):
    """One reported status for a commit"""

    model_config = ConfigDict(frozen=True)

    repo_id: int
    sha: str = Field(..., min_length=4, max_length=64)
    context: str = Field(..., min_length=1, max_length=255)
    state: CommitStatusState
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
