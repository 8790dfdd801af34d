from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from repogate.core.models.access import AccessMode


class Collaboration(BaseModel):
    """Direct access grant of one user on one repository"""

    model_config = ConfigDict(frozen=True)

    repo_id: int
    user_id: int
    mode: AccessMode = Field(default=AccessMode.WRITE)
    created_at: datetime = Field(default_factory=datetime.utcnow)
