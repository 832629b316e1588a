from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./hrbot.db"
    log_level: str = "INFO"

    slack_bot_token: str = ""
    slack_signing_secret: Optional[str] = None
    slack_app_token: Optional[str] = None
    slack_api_url: str = "https://slack.com/api"
    socket_mode_enabled: bool = False
    signature_max_age_seconds: int = 300

    openai_api_key: str = ""
    openai_assistant_id: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"

    run_poll_interval_seconds: float = 0.5
    run_poll_backoff: float = 1.5
    run_poll_max_interval_seconds: float = 4.0
    run_timeout_seconds: float = 120.0
    http_timeout_seconds: float = 30.0

    thinking_message: str = "Бодож байна..."
    error_message: str = "Уучлаарай, алдаа гарлаа. Дахин оролдоно уу."

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()


def get_settings() -> Settings:
    return settings
