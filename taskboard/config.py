from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache


def _flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./taskboard.db"
    log_level: str = "INFO"
    sql_echo: bool = False
    min_password_length: int = 8
    bcrypt_rounds: int = 12
    notifications_page_size: int = 20

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            sql_echo=_flag(os.getenv("SQL_ECHO", "0")),
            min_password_length=int(os.getenv("MIN_PASSWORD_LENGTH", str(cls.min_password_length))),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", str(cls.bcrypt_rounds))),
            notifications_page_size=int(
                os.getenv("NOTIFICATIONS_PAGE_SIZE", str(cls.notifications_page_size))
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logging.getLogger("taskboard").setLevel(settings.log_level)
