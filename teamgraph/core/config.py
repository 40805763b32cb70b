from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./teamgraph.db"
    FRONTEND_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Invitations
    INVITATION_EXPIRE_DAYS: int = 7

    # Corruption guard for ancestor/descendant walks
    HIERARCHY_MAX_DEPTH: int = 32

    RATE_LIMIT_ENABLED: bool = True

    # Shared secret for the usage ingest endpoint; unset leaves it open for local runs
    USAGE_INGEST_TOKEN: Optional[str] = None

    # Email settings; the log notifier is used when SMTP_HOST is unset
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: str = "no-reply@teamgraph.local"
    SMTP_FROM_NAME: str = "Teamgraph"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

settings = Settings()
