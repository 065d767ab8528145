"""
Environment-driven configuration.

Values are read once from the process environment, after loading an optional
`.env` file at the project root:

- SALES_BACKEND: "memory" (default) or "supabase"
- SUPABASE_URL / SUPABASE_KEY: required only for the supabase backend
- DEFAULT_CURRENCY: ISO currency code for new sales and products (default BRL)
- LOG_LEVEL: root log level for the API process (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_BACKENDS = ("memory", "supabase")


@dataclass(frozen=True, slots=True)
class Settings:
    backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    default_currency: str = "BRL"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.backend not in _BACKENDS:
            raise RuntimeError(
                f"Unsupported SALES_BACKEND {self.backend!r}. Use one of: {', '.join(_BACKENDS)}"
            )

    def require_supabase_credentials(self) -> tuple[str, str]:
        if not self.supabase_url:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_URL. "
                "Set SUPABASE_URL to your Supabase project URL."
            )
        if not self.supabase_key:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_KEY. "
                "Set SUPABASE_KEY to your Supabase API key."
            )
        return self.supabase_url, self.supabase_key


def load_settings() -> Settings:
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    return Settings(
        backend=os.getenv("SALES_BACKEND", "memory").strip().lower(),
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_KEY") or None,
        default_currency=os.getenv("DEFAULT_CURRENCY", "BRL").strip().upper(),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


__all__ = ["Settings", "load_settings", "get_settings"]
