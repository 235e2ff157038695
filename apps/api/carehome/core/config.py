from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./carehome.db"
    jwt_secret_key: str = "your-secret-key-change-in-production"  # Default for development
    jwt_algorithm: str = "HS256"

    # Wall clock used for leave cutoffs and calendar events
    timezone: str = "Europe/London"

    # Comma-separated, e.g. "http://localhost:8081,https://admin.example.com"
    cors_origins: str = ""

    log_level: str = "INFO"

    upload_dir: str = "uploads/leaves"
    max_leave_attachments: int = 5

    # Calendar service; sync is disabled when no URL is set
    calendar_api_url: str | None = None
    calendar_api_token: str | None = None
    calendar_id: str = "primary"

    # SMTP; notifications are only logged when no host is set
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str = "roster@carehome.local"
    admin_notification_email: str | None = None

    def allowed_origins(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        # Safe fallback for local dev if env var not set
        if not origins:
            origins = [
                "http://localhost:8081",
                "http://127.0.0.1:8081",
            ]
        return origins


def get_settings() -> Settings:
    return Settings()
