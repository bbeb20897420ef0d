"""Configuration management for todosync."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Document store
    sqlite_db_path: str = Field(default="data/todosync.sqlite3", description="SQLite file backing the document store")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    service_name: str = Field(default="todosync", description="Service name reported to Logfire")
    environment: str = Field(default="production", description="Deployment environment reported to Logfire")


# Application Constants
class Constants:
    """Application-wide constants."""

    # Document paths: users/{user_id}/todoLists/{list_id}/tasks/{task_id}
    USERS_COLLECTION: str = "users"
    LISTS_COLLECTION: str = "todoLists"
    TASKS_COLLECTION: str = "tasks"

    # Generated document ids (same length as Firestore auto-ids)
    DOCUMENT_ID_LENGTH: int = 20


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
