"""
Configuration Management for mangatrack

This module centralizes all application configuration: database location,
Shikimori OAuth client credentials, request timeouts and logging options.

All configuration values have sensible defaults and can be overridden via
environment variables for production deployment.
"""

import os


class Config:
    """
    Centralized configuration management using environment variables.

    Client credentials for the Shikimori OAuth application have no usable
    default and must be provided through the environment before login.
    """

    # =============================================================================
    # APPLICATION SETTINGS
    # =============================================================================
    APP_VERSION = "1.0.0"
    APP_TITLE = "mangatrack"
    APP_DESCRIPTION = "Manga tracker service bridging a local library to Shikimori"
    APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT = int(os.getenv("APP_PORT", "8000"))

    DEBUG = os.getenv("DEBUG", "false").lower() == "true"

    # =============================================================================
    # DATABASE CONFIGURATION
    # =============================================================================
    _db_path = "./data/mangatrack.db" if os.path.exists("./data") else "./backend/data/mangatrack.db"
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        f"sqlite:///{_db_path}"
    )

    # =============================================================================
    # SHIKIMORI
    # =============================================================================
    SHIKIMORI_BASE_URL = os.getenv("SHIKIMORI_BASE_URL", "https://shikimori.one")
    SHIKIMORI_CLIENT_ID = os.getenv("SHIKIMORI_CLIENT_ID", "")
    SHIKIMORI_CLIENT_SECRET = os.getenv("SHIKIMORI_CLIENT_SECRET", "")
    # Must match the redirect URI registered for the OAuth application
    SHIKIMORI_REDIRECT_URI = os.getenv(
        "SHIKIMORI_REDIRECT_URI",
        "http://localhost:8000/auth/shikimori"
    )

    # Shikimori rejects requests without a User-Agent
    USER_AGENT = os.getenv("USER_AGENT", f"mangatrack/{APP_VERSION}")

    # =============================================================================
    # REQUEST TIMEOUTS (seconds)
    # =============================================================================
    API_REQUEST_TIMEOUT = int(os.getenv("API_REQUEST_TIMEOUT", "30"))

    # =============================================================================
    # LOGGING
    # =============================================================================
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()
    JSON_LOGS = os.getenv("JSON_LOGS", "false").lower() == "true"

    @classmethod
    def validate(cls) -> bool:
        """
        Validate critical configuration values.

        Returns:
            True if configuration is valid, False otherwise
        """
        if not cls.DATABASE_URL:
            return False

        if cls.APP_PORT < 1 or cls.APP_PORT > 65535:
            return False

        if cls.API_REQUEST_TIMEOUT <= 0:
            return False

        return True

    @classmethod
    def shikimori_configured(cls) -> bool:
        """Whether OAuth client credentials are available for Shikimori."""
        return bool(cls.SHIKIMORI_CLIENT_ID and cls.SHIKIMORI_CLIENT_SECRET)

    @classmethod
    def get_summary(cls) -> dict:
        """
        Get configuration summary for logging/debugging.

        Returns:
            Dictionary with non-sensitive configuration values
        """
        return {
            "app_version": cls.APP_VERSION,
            "debug": cls.DEBUG,
            "app_host": cls.APP_HOST,
            "app_port": cls.APP_PORT,
            "database_url": cls.DATABASE_URL.split("@")[-1] if "@" in cls.DATABASE_URL else "sqlite",
            "shikimori_base_url": cls.SHIKIMORI_BASE_URL,
            "shikimori_configured": cls.shikimori_configured(),
            "api_timeout": cls.API_REQUEST_TIMEOUT,
            "log_level": cls.LOG_LEVEL,
            "json_logs": cls.JSON_LOGS,
        }


# Singleton instance
config = Config()
