"""
RFP Manager - Configuration Management

Central configuration using Pydantic settings with multi-provider LLM support.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # LLM Provider Configuration
    llm_provider: LLMProvider = Field(
        default=LLMProvider.OPENAI,
        description="LLM provider to use"
    )

    # Provider API Keys
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    google_api_key: Optional[str] = Field(default=None, description="Google API key")

    # Model Configuration
    llm_model: Optional[str] = Field(
        default=None,
        description="Model to use (defaults based on provider)"
    )
    llm_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )

    # Storage / Logging
    data_dir: Path = Field(
        default=Path("./data"),
        description="Data directory for logs and local files"
    )
    log_level: str = Field(default="INFO", description="Console log level")
    log_to_file: bool = Field(default=True, description="Also write logs to data/logs")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, description="API port")
    api_env: str = Field(default="development", description="API environment")
    cors_origins: str = Field(
        default="http://localhost:3001,http://localhost:5173",
        description="CORS origins (comma-separated)"
    )
    rate_limit_enabled: bool = Field(default=True, description="Enable slowapi rate limits")
    app_url: str = Field(
        default="http://localhost:3001",
        description="Public URL of the client app, used in vendor emails"
    )

    # Database Configuration
    database_url: str = Field(
        default="postgresql+asyncpg://localhost/rfp_manager",
        description="Database connection URL"
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL queries for debugging"
    )

    # JWT Configuration
    jwt_secret: str = Field(
        default="change-this-in-production-use-long-random-string",
        description="JWT signing secret"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_expire_minutes: int = Field(default=60 * 24, description="Access token expiry")
    jwt_refresh_expire_days: int = Field(default=30, description="Refresh token expiry")

    # Outbound mail (SMTP)
    email_host: str = Field(default="smtp.gmail.com", description="SMTP host")
    email_port: int = Field(default=587, description="SMTP port")
    email_secure: bool = Field(
        default=False,
        description="Use implicit TLS for SMTP (otherwise STARTTLS)"
    )
    email_user: Optional[str] = Field(default=None, description="Mailbox user")
    email_password: Optional[str] = Field(default=None, description="Mailbox password")
    email_from: str = Field(
        default="rfp-manager@example.com",
        description="Sender address for outbound mail"
    )

    # Inbound mail (IMAP)
    email_imap_host: str = Field(default="imap.gmail.com", description="IMAP host")
    email_imap_port: int = Field(default=993, description="IMAP port")
    email_imap_secure: bool = Field(default=True, description="Use IMAP over TLS")
    email_polling_enabled: bool = Field(
        default=False,
        description="Start the mailbox poller with the API process"
    )
    email_process_interval: int = Field(
        default=300,
        ge=1,
        description="Seconds between mailbox polls"
    )
    email_max_per_check: int = Field(
        default=50,
        ge=1,
        description="Maximum messages handled per poll"
    )
    email_reconnect_delay: int = Field(
        default=5,
        ge=0,
        description="Seconds to wait before reconnecting after a mailbox error"
    )
    email_noop_interval: float = Field(
        default=15,
        gt=0,
        description="Seconds between NOOP checks for new mail while listening"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        return self.api_env == "production"

    @property
    def email_configured(self) -> bool:
        """Whether mailbox credentials are present."""
        return bool(self.email_user and self.email_password)

    def api_key_for(self, provider: Optional[LLMProvider] = None) -> Optional[str]:
        """
        Get the API key for a provider (the active one by default).

        Raises:
            ValueError: If the provider is not supported
        """
        provider = provider or self.llm_provider
        key_map = {
            LLMProvider.OPENAI: self.openai_api_key,
            LLMProvider.ANTHROPIC: self.anthropic_api_key,
            LLMProvider.GEMINI: self.google_api_key,
        }
        if provider not in key_map:
            raise ValueError(f"Unsupported LLM provider: {provider}")
        return key_map[provider]

    @property
    def default_model(self) -> str:
        """Get the default model for the active provider."""
        if self.llm_model:
            return self.llm_model

        defaults = {
            LLMProvider.OPENAI: "gpt-3.5-turbo",
            LLMProvider.ANTHROPIC: "claude-3-haiku-20240307",
            LLMProvider.GEMINI: "gemini-1.5-flash",
        }
        return defaults.get(self.llm_provider, "gpt-3.5-turbo")

    @property
    def logs_dir(self) -> Path:
        """Directory for log files."""
        path = self.data_dir / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path


# Global settings instance
settings = Settings()
