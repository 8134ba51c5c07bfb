from datetime import UTC, datetime

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so timestamps compare cleanly across sessions and messages.
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    """Runtime settings, read from ``STUDY_AGENTS_*`` env vars or ``.env``."""

    app_name: str = "Study Agents"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Generation service
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_timeout_seconds: float = 60.0
    anthropic_max_retries: int = 3
    anthropic_rate_limit_rpm: int = 50
    llm_input_price_per_million: float = 3.0
    llm_output_price_per_million: float = 15.0

    # Tutoring sessions
    session_ttl_seconds: int = 7200  # 2 hours
    conversation_window: int = 6  # last 3 exchanges

    # Flashcards
    max_flashcards: int = 50

    model_config = {"env_prefix": "STUDY_AGENTS_", "env_file": ".env"}


settings = Settings()
