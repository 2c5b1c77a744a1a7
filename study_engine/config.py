from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    chat_model: str = "gpt-4.1-mini"

    postgres_host: str = "db"
    postgres_port: int = 5432
    postgres_user: str = "study"
    postgres_password: str = "study"
    postgres_db: str = "study"

    # Per-call generation budget; also the SDK request timeout
    generation_timeout_seconds: float = 45.0

    default_quiz_questions: int = 20

    redis_url: str = "redis://redis:6379/0"

    log_level: str = "INFO"
    json_logs: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8"
    }

    @property
    def pg_dsn(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
