"""Runtime settings loaded from the environment (and a local ``.env``)."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    currency: str
    locale: str
    log_level: str
    log_file: Optional[str]
    app_title: str


def get_settings() -> Settings:
    """Read settings fresh from the environment.

    Defaults target a local SQLite file; point ``DATABASE_URL`` at the hosted
    Postgres instance (e.g. Supabase) in production.
    """
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///finance_tracker.db"),
        currency=os.getenv("CURRENCY", "BRL").upper(),
        locale=os.getenv("LOCALE", "pt-BR"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE") or None,
        app_title=os.getenv("APP_TITLE", "Wallet Tracker"),
    )
