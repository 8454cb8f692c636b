from __future__ import annotations
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BLOCKWIRE_", env_file=".env", extra="ignore")

    # Slack
    slack_token: str | None = Field(default=None, description="Bot or app token used as the bearer credential.")
    base_url: str = Field(default="https://slack.com/api/")

    # Delivery
    max_retry_attempts: int = Field(default=3, description="Retries after the first attempt on transport failure.")
    retry_backoff_s: float = Field(default=5.0, description="Retry n waits retry_backoff_s * (1 + n) seconds.")
    request_timeout_s: float = Field(default=30.0)

    # Logging
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

def load_settings() -> Settings:
    return Settings()
