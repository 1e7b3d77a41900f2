"""
Settings Configuration

Centralized configuration and feature flag management.
All values are loaded from environment variables (a .env file is honoured).
"""
import os

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on garbage."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Settings:
    """
    Application settings.
    
    To add a new setting:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Use it in your code
    """
    
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./scorekeeper.db")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = get_int_env("PORT", 8000)
    
    # Participant listing
    DEFAULT_PAGE_SIZE: int = get_int_env("DEFAULT_PAGE_SIZE", 20)
    MAX_PAGE_SIZE: int = get_int_env("MAX_PAGE_SIZE", 100)
    
    # CSV bulk import
    CSV_MAX_ROWS: int = get_int_env("CSV_MAX_ROWS", 2000)
    FEATURE_CSV_IMPORT: bool = get_bool_env("FEATURE_CSV_IMPORT", True)
    FEATURE_PROBLEM_CSV_EXPORT: bool = get_bool_env("FEATURE_PROBLEM_CSV_EXPORT", True)
    
    @classmethod
    def is_enabled(cls, flag_name: str) -> bool:
        """Check if a feature flag is enabled by name."""
        return getattr(cls, flag_name, False)
    
    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: value
            for key, value in cls.__dict__.items()
            if key.startswith('FEATURE_') and isinstance(value, bool)
        }


# Singleton instance for easy importing
settings = Settings()
