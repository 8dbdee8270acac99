"""Configuration management for readingcircle.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Acting user (opaque id issued by the auth provider)
    user_id: Optional[str]

    # Wrap multi-row writes (priority swap, reorder, invite accept) in one transaction
    atomic_writes: bool

    # Logging
    log_level: str

    # Book search
    search_timeout: int  # seconds

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "READINGCIRCLE_DB_PATH",
            str(Path.home() / ".readingcircle" / "circle.db"),
        )
        db_path = Path(db_path_str) if db_path_str == ":memory:" else Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            user_id=os.environ.get("READINGCIRCLE_USER_ID") or None,
            atomic_writes=_env_flag("READINGCIRCLE_ATOMIC_WRITES", True),
            log_level=os.environ.get("READINGCIRCLE_LOG_LEVEL", "WARNING").upper(),
            search_timeout=int(os.environ.get("READINGCIRCLE_SEARCH_TIMEOUT", "10")),
        )

    @property
    def is_memory_db(self) -> bool:
        return str(self.db_path) == ":memory:"

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not self.is_memory_db and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            errors.append(f"Unknown log level: {self.log_level}")

        if self.search_timeout <= 0:
            errors.append("Search timeout must be positive")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
