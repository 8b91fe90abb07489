import logging
import os
import secrets
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).resolve().parents[2]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings loaded from environment variables with safe defaults."""

    app_name: str = "AI Pilot Front"
    env: str = "dev"
    database_url: str = "sqlite+aiosqlite:///./aip_front.db"
    log_level: str = "INFO"

    api_base_url: str = "http://localhost:8080"
    api_key: str = ""
    sso_base_url: str = "https://sso.isan.to"
    base_url: str = "http://localhost:8000"
    session_secret: str = ""

    remote_timeout_seconds: float = 10.0
    pilot_name_cache_size: int = 2048
    identity_cache_size: int = 2048
    identity_cache_ttl_seconds: int = 60 * 60 * 24
    upload_max_bytes: int = 25 * 1024 * 1024
    prewarm_on_startup: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables (and a .env file at the repo root)."""
        load_dotenv(_REPO_ROOT / ".env")

        session_secret = os.getenv("SESSION_SECRET", "")
        if not session_secret:
            # Sessions do not survive a restart without a configured secret.
            logger.warning("SESSION_SECRET not set; generating a per-process secret")
            session_secret = secrets.token_hex(32)

        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            env=os.getenv("ENV", cls.env),
            database_url=os.getenv("DATABASE_URL") or cls.database_url,
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            api_base_url=os.getenv("AIP_API_BASE_URL", cls.api_base_url).rstrip("/"),
            api_key=os.getenv("AIP_API_KEY", cls.api_key),
            sso_base_url=os.getenv("SSO_BASE_URL", cls.sso_base_url).rstrip("/"),
            base_url=os.getenv("BASE_URL", cls.base_url).rstrip("/"),
            session_secret=session_secret,
            remote_timeout_seconds=_env_float("REMOTE_TIMEOUT_SECONDS", cls.remote_timeout_seconds),
            pilot_name_cache_size=_env_int("PILOT_NAME_CACHE_SIZE", cls.pilot_name_cache_size),
            identity_cache_size=_env_int("IDENTITY_CACHE_SIZE", cls.identity_cache_size),
            identity_cache_ttl_seconds=_env_int(
                "IDENTITY_CACHE_TTL_SECONDS", cls.identity_cache_ttl_seconds
            ),
            upload_max_bytes=_env_int("UPLOAD_MAX_BYTES", cls.upload_max_bytes),
            prewarm_on_startup=_env_bool("PREWARM_ON_STARTUP", cls.prewarm_on_startup),
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings.from_env()
