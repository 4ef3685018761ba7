"""
Configuration settings for the Kanban sync client
"""
import os

from dotenv import load_dotenv


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _float_env(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}")


class Settings:
    """Client settings"""

    def __init__(self):
        # Load from environment variables with safe defaults
        self.app_name = os.getenv("APP_NAME", "Kanban Sync Client")
        self.app_version = os.getenv("APP_VERSION", "1.0.0")
        self.debug = os.getenv("DEBUG", "False").lower() == "true"
        self.environment = os.getenv("ENVIRONMENT", "development")

        # Backend
        self.api_base_url = os.getenv("API_BASE_URL", "http://localhost:3000/api").rstrip("/")
        self.api_token = os.getenv("API_TOKEN", "")
        self.session_cookie_name = os.getenv("SESSION_COOKIE_NAME", "next-auth.session-token")
        self.session_cookie = os.getenv("SESSION_COOKIE", "")
        self.request_timeout = _float_env("REQUEST_TIMEOUT", "0")  # seconds, 0 = no client timeout
        if self.request_timeout < 0:
            raise RuntimeError("REQUEST_TIMEOUT must be non-negative")

        # Polling
        self.poll_interval_seconds = _float_env("POLL_INTERVAL_SECONDS", "2")
        if self.poll_interval_seconds <= 0:
            raise RuntimeError("POLL_INTERVAL_SECONDS must be positive")

        # Activity log
        self.activity_local_cap = _int_env("ACTIVITY_LOCAL_CAP", "50")
        self.activity_merged_cap = _int_env("ACTIVITY_MERGED_CAP", "100")

        # Store persistence
        self.store_name = os.getenv("STORE_NAME", "project-management-storage")
        self.storage_backend = os.getenv("STORAGE_BACKEND", "memory").lower()
        if self.storage_backend not in ("memory", "file", "redis"):
            raise RuntimeError("STORAGE_BACKEND must be one of: memory, file, redis")
        self.storage_path = os.getenv("STORAGE_PATH", ".kanban_sync_store")
        self.redis_url = os.getenv("REDIS_URL", "redis://localhost:6379")

        # File Upload
        self.max_file_size = _int_env("MAX_FILE_SIZE", "10485760")  # 10MB

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_format = os.getenv("LOG_FORMAT", "json")


# Load environment variables from .env file if it exists
load_dotenv()

# Global settings instance
settings = Settings()
