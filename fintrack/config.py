import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    sql_echo: bool
    jwt_secret: str
    jwt_algorithm: str
    jwt_expires_minutes: int
    bcrypt_rounds: int
    environment: str
    app_log_level: str = "INFO"
    third_party_log_level: str = "WARNING"
    log_file: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Read application settings from environment variables.

    The result is cached for the lifetime of the process; call
    ``get_settings.cache_clear()`` after changing the environment in tests.
    """
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///fintrack.db"),
        sql_echo=os.getenv("SQL_ECHO", "false").lower() == "true",
        jwt_secret=os.getenv("JWT_SECRET", "change-me-in-production"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_expires_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", str(7 * 24 * 60))),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
        environment=os.getenv("ENVIRONMENT", "development"),
        app_log_level=os.getenv("APP_LOG_LEVEL", "INFO"),
        third_party_log_level=os.getenv("THIRD_PARTY_LOG_LEVEL", "WARNING"),
        log_file=os.getenv("LOG_FILE") or None,
    )
