"""
Configuration helpers for the users API.

Reads environment variables once and exposes them as a typed, immutable
Settings object. The app factory receives a Settings instance explicitly.
"""

from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
import os

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DATA_FILE = PROJECT_ROOT / "data" / "users.json"

DEV_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str = "dev"
    host: str = "127.0.0.1"
    port: int = 3000
    data_file: Path = DEFAULT_DATA_FILE
    cors_origins: tuple[str, ...] = ()
    log_level: str = "INFO"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    def allowed_origins(self) -> list[str]:
        origins = set(self.cors_origins)
        if not self.is_prod:
            origins.update(DEV_ORIGINS)
        return sorted(origin for origin in origins if origin)

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the non-None values in ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str | None, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None) -> tuple[str, ...]:
        if not value:
            return ()
        return tuple(item.strip().rstrip("/") for item in value.split(",") if item.strip())

    data_file = os.getenv("USERS_DATA_FILE")
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_int(os.getenv("PORT", "3000"), 3000),
        data_file=Path(data_file).expanduser() if data_file else DEFAULT_DATA_FILE,
        cors_origins=_list(os.getenv("CORS_ORIGINS")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
