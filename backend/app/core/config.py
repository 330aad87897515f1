"""Runtime settings loaded from the environment."""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()

TRANSACTION_TYPES = ("income", "expense")
DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    def __init__(self) -> None:
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ledgerline.db")
        self.SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
        self.SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
        self.AUTH_TIMEOUT_SECONDS = _env_int("AUTH_TIMEOUT_SECONDS", 10)
        self.CORS_ORIGINS = _env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.IMPORT_PREVIEW_LIMIT = _env_int("IMPORT_PREVIEW_LIMIT", 10)
        self.DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")

        # Type assigned to negative CSV amounts; non-negative ones get the other type.
        self.NEGATIVE_AMOUNT_TYPE = os.getenv("NEGATIVE_AMOUNT_TYPE", "income").strip().lower()
        if self.NEGATIVE_AMOUNT_TYPE not in TRANSACTION_TYPES:
            raise ValueError(
                f"NEGATIVE_AMOUNT_TYPE must be one of {', '.join(TRANSACTION_TYPES)}"
            )


settings = Settings()
