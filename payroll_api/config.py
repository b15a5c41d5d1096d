"""Application configuration via environment variables."""

from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    DB_HOST: str = "127.0.0.1"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "manila_payroll"
    DATABASE_URL: Optional[str] = None

    DB_POOL_SIZE: int = 10
    DB_QUEUE_LIMIT: int = 100
    DB_POOL_TIMEOUT: float = 30.0
    DB_CONNECT_TIMEOUT: int = 10

    HOST: str = "0.0.0.0"
    PORT: int = 5000
    FRONTEND_URL: str = "http://localhost:3001"
    MAX_BODY_SIZE: int = 10 * 1024 * 1024
    STATIC_DIR: str = "public"

    LOG_DIR: str = "log"
    LOG_LEVEL: str = "INFO"

    APP_VERSION: str = "1.0.0"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+pymysql://{self.DB_USER}:{quote_plus(self.DB_PASSWORD)}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()
