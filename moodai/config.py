"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment (prefix ``MOODAI_``)."""

    model_config = SettingsConfigDict(env_prefix="MOODAI_", env_file=".env", extra="ignore")

    # Auth
    jwt_secret: str = "change-me"
    jwt_expiry_days: int = 7
    cookie_secure: bool = False

    # LLM replies; canned replies are used when no key is set
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    llm_timeout_seconds: float = 8.0

    # Payments
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_base_url: str = "https://api.razorpay.com/v1"
    consultation_price: float = 999.0
    consultation_currency: str = "INR"

    # Email; sending is skipped when smtp_host is empty
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    mail_from: str = "MoodAI <no-reply@moodai.app>"
    frontend_url: str = "http://localhost:5173"
    send_session_summaries: bool = False

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:5174"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
