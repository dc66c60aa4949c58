"""
Configuration management using Pydantic Settings.
Loads environment variables from .env file with validation.
"""

from pathlib import Path
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Fireworks AI Configuration
    fireworks_api_key: Optional[str] = Field(
        default=None,
        description="Fireworks AI API key"
    )
    fireworks_llm_model: str = Field(
        default="accounts/fireworks/models/llama-v3p3-70b-instruct",
        description="Chat / tool calling model"
    )
    fireworks_document_model: str = Field(
        default="accounts/fireworks/models/llama-v3p3-70b-instruct",
        description="Model used to read uploaded policy documents"
    )
    llm_timeout_seconds: float = Field(default=60.0, description="Per-request LLM timeout")
    llm_max_attempts: int = Field(default=2, description="Transport attempts per LLM call")

    # MongoDB Configuration
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    mongodb_database: str = Field(
        default="insurance_ai",
        description="MongoDB database name"
    )
    mongodb_timeout_ms: int = Field(default=5000, description="Server selection / socket timeout")

    # Public URL the LLM provider uses to download stored documents
    public_base_url: str = Field(default="http://localhost:8000")

    # Email (SendGrid SMTP relay by default)
    smtp_host: str = Field(default="smtp.sendgrid.net")
    smtp_port: int = Field(default=587)
    smtp_username: str = Field(default="apikey")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password / SendGrid API key")
    smtp_use_tls: bool = Field(default=True)
    smtp_timeout_seconds: float = Field(default=30.0)
    email_from: Optional[str] = Field(default=None, description="Sender address")
    email_max_attempts: int = Field(default=3)
    email_backoff_seconds: float = Field(default=1.0, description="Linear backoff step between attempts")
    app_name: str = Field(default="Insurance AI")

    # Orchestration step budgets
    chat_max_steps: int = Field(default=12)
    recommendation_max_steps: int = Field(default=10)

    # API Configuration
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)

    # Logging
    log_level: str = Field(default="INFO")

    # Paths (computed)
    @property
    def project_root(self) -> Path:
        """Get project root directory."""
        return Path(__file__).parent.parent

    @property
    def email_provider(self) -> str:
        """Name reported for delivered emails."""
        return "sendgrid" if "sendgrid" in self.smtp_host else "smtp"

    class Config:
        env_file = Path(__file__).parent.parent / ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
