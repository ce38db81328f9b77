"""
API configuration and settings management.
"""
import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # Database
    DB_PATH: str = os.getenv("ECAY_DB", "./data/db/ecaytracker.db")

    # API settings
    API_TITLE: str = "ecaytracker API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Dashboard API for tracked ecaytrade vehicle listings"
    PORT: int = int(os.getenv("PORT", "8080"))
    ENV: str = os.getenv("ENV", "development")

    # CORS settings
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
    CORS_ALLOW_METHODS: list = ["GET", "OPTIONS"]
    CORS_ALLOW_HEADERS: list = ["Origin", "Content-Type", "Authorization"]

    # Pagination defaults
    DEFAULT_API_LIMIT: int = 500
    MAX_API_LIMIT: int = 5000

    # Stats
    TOP_MAKES: int = 8
    NEW_LISTING_DAYS: int = 7

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def validate(self) -> None:
        """Validate configuration on startup."""
        if not os.path.exists(self.DB_PATH):
            raise FileNotFoundError(f"Database file not found: {self.DB_PATH}")

# Global config instance
config = Config()
