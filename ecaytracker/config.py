"""
Scraper configuration loaded from environment variables and an optional .env file.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

BASE_LISTINGS_URL_DEFAULT = "https://ecaytrade.com/autos-boats/autos?minprice=4000"
DB_PATH_DEFAULT = "./data/db/ecaytracker.db"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


@dataclass
class ScraperConfig:
    """Settings consumed by the traversal controller and the batch runner."""

    base_url: str = BASE_LISTINGS_URL_DEFAULT
    db_path: str = DB_PATH_DEFAULT
    headless: bool = False
    max_pages: int = 0  # 0 = no limit
    min_price: float = 4000.0
    pacing: bool = True
    nav_timeout_ms: int = 45_000
    card_timeout_ms: int = 30_000
    detail_timeout_ms: int = 20_000
    pass_timeout_s: Optional[float] = None
    detail_concurrency: int = 1
    storage_state_path: Optional[str] = None

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env") -> "ScraperConfig":
        """Build config from the environment, loading env_file first if present."""
        if env_file and os.path.exists(env_file):
            load_dotenv(env_file)

        pass_timeout = _env_float("PASS_TIMEOUT_S", 0.0)
        return cls(
            base_url=os.getenv("BASE_URL", BASE_LISTINGS_URL_DEFAULT),
            db_path=os.getenv("ECAY_DB", DB_PATH_DEFAULT),
            headless=_env_bool("HEADLESS", False),
            max_pages=_env_int("MAX_PAGES", 0),
            min_price=_env_float("MIN_PRICE", 4000.0),
            pacing=_env_bool("PACING", True),
            nav_timeout_ms=_env_int("NAV_TIMEOUT_MS", 45_000),
            card_timeout_ms=_env_int("CARD_TIMEOUT_MS", 30_000),
            detail_timeout_ms=_env_int("DETAIL_TIMEOUT_MS", 20_000),
            pass_timeout_s=pass_timeout or None,
            detail_concurrency=_env_int("DETAIL_CONCURRENCY", 1),
            storage_state_path=os.getenv("STORAGE_STATE") or None,
        )

    def validate(self) -> None:
        """Reject settings the controller cannot run with."""
        if not self.base_url:
            raise ConfigError("BASE_URL is required")
        if not self.db_path:
            raise ConfigError("ECAY_DB is required")
        if self.max_pages < 0:
            raise ConfigError("MAX_PAGES must be >= 0")
        if self.min_price < 0:
            raise ConfigError("MIN_PRICE must be >= 0")
        if self.detail_concurrency < 1:
            raise ConfigError("DETAIL_CONCURRENCY must be >= 1")

    def page_url(self, page_num: int) -> str:
        """URL of results page N; page 1 is the base URL itself."""
        if page_num <= 1:
            return self.base_url
        sep = "&" if "?" in self.base_url else "?"
        return f"{self.base_url}{sep}page={page_num}"
