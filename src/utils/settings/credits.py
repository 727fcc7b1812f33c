"""Credit ledger settings configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CreditSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Applied as SET LOCAL lock_timeout on PostgreSQL row locks
    CREDITS_LOCK_TIMEOUT_MS: int = 5000

    # Hard ceiling on periods applied by a single catch-up run
    CREDITS_MAX_CATCH_UP_PERIODS: int = 120

    CREDITS_GRANT_MAX_ATTEMPTS: int = 3
    CREDITS_GRANT_RETRY_DELAY_SECONDS: float = 1.0

    # 0 disables the welcome bonus
    CREDITS_WELCOME_BONUS: int = 0
