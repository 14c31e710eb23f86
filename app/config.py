from pydantic_settings import BaseSettings, SettingsConfigDict

import os

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./nofap_admin.db"

    # JWT signing key for admin sessions
    secret_key: str = os.getenv("JWT_SECRET", "change-me-in-production-for-jwt")
    access_token_days: int = 7

    superadmin_email: str | None = None
    superadmin_password: str | None = None

    openai_api_key: str | None = None
    openai_model: str = "gpt-4-turbo-preview"
    openai_temperature: float = 1.2
    openai_max_tokens: int = 2000

    default_language: str = "tr"
    log_level: str = "INFO"

    axiom_token: str | None = None
    axiom_dataset: str | None = None
    axiom_url: str = "https://api.axiom.co"
    axiom_org_id: str | None = None

    scheduler_enabled: bool = True
    notification_poll_seconds: int = 60
    device_retention_days: int = 90

    auth_rate_limit: int = 5
    auth_rate_window_seconds: int = 15 * 60
    ai_rate_limit: int = 30
    ai_rate_window_seconds: int = 15 * 60
    export_rate_limit: int = 10
    export_rate_window_seconds: int = 60 * 60

    auto_block_threshold: int = 10

settings = Settings()
