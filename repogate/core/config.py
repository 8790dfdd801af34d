from typing import List, Literal, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    app_name: str = Field(default="RepoGate", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment mode"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validate_default=True, description="Log output format"
    )

    database_url: str = Field(
        default="sqlite:///./repogate.db", description="Database connection URL"
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    database_pool_size: int = Field(
        default=20, description="Connection pool size (ignored for SQLite)"
    )

    # Authorization settings
    status_context_window_days: int = Field(
        default=7,
        ge=1,
        description="Trailing window used to suggest required status check contexts",
    )
    default_collaboration_mode: Literal["read", "write", "admin"] = Field(
        default="write", description="Access mode given to newly added collaborators"
    )
    disabled_repo_units: List[str] = Field(
        default_factory=list,
        description="Unit keys disabled site-wide (e.g. repo.wiki, repo.packages)",
    )

    @field_validator("log_format", mode="before")
    @classmethod
    def validate_log_format(cls, v, info: ValidationInfo):
        if info.data.get("environment") == "production":
            return "json"
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


settings = get_settings()
