from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///./dev.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    CREDIT_NOTE_PREFIX: str = "CN-"
    CREDIT_NOTE_NUMBER_WIDTH: int = 4
    DEFAULT_VAT_RATE: float = 15.0

    # reversing a credit note may push stock below zero if the goods were resold
    ALLOW_NEGATIVE_STOCK: bool = False

    IDEMPOTENCY_WAIT_SECONDS: float = 2.0


settings = Settings()
