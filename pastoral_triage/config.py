"""
Centralized configuration using Pydantic Settings.

All environment variables are loaded and validated here.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Monitored mailbox (Microsoft Graph)
    monitored_mailbox: str = ""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    use_delegated_permissions: bool = False
    graph_access_token: str = ""  # Delegated token acquired out of band
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    graph_timeout_seconds: float = 30.0

    # Sender allow-list (comma-separated, empty = allow all)
    allowed_senders: str = ""

    # Fetch window
    fetch_limit: int = 100
    fetch_window_hours: int = 24

    # Triage database
    triage_db_host: str = "localhost"
    triage_db_port: int = 5432
    triage_db_name: str = "pastoral_care"
    triage_db_user: str = "pastoral_care"
    triage_db_password: str = ""

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    classifier_timeout_seconds: float = 60.0
    classifier_max_body_chars: int = 4000

    # Scheduler settings
    enable_scheduler: bool = True
    triage_schedule: str = "*/5 * * * *"  # crontab: every 5 minutes

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True  # False for colored dev output

    @property
    def database_url(self) -> str:
        """PostgreSQL connection URL for the triage database."""
        return (
            f"postgresql://{self.triage_db_user}:{self.triage_db_password}"
            f"@{self.triage_db_host}:{self.triage_db_port}/{self.triage_db_name}"
        )

    @property
    def allowed_sender_list(self) -> list[str]:
        """Allowed senders parsed from the comma-separated setting."""
        return [s.strip() for s in self.allowed_senders.split(",") if s.strip()]

    @property
    def delegated_auth(self) -> bool:
        """Delegated auth is used when requested or when no client secret is set."""
        return self.use_delegated_permissions or not self.client_secret


# Global settings instance
settings = Settings()
