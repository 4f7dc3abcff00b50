"""
Configuration management for the delivery workflow service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DELIVERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Delivery Workflow")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)

    # Database
    database_url: str = Field(default="sqlite:///./delivery_workflow.db")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")

    # Notifications
    notifications_enabled: bool = Field(
        default=True,
        description="Persist notifications for recipients; when false events are only logged.",
    )

    # Workflow rules
    require_rejection_note: bool = Field(
        default=True, description="A rejected decision must carry a non-blank note."
    )
    max_delivery_artifacts: int = Field(
        default=10, ge=1, description="Upper bound on artifacts per delivery."
    )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
