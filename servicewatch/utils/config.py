"""
ServiceWatch - Configuration Management

This module handles loading and validating configuration from environment variables
and an optional .env file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_WINDOW_DAYS = 7


@dataclass
class GatewayConfig:
    """Configuration for the dashboard backend API."""
    base_url: str
    timeout_seconds: float = 15.0


@dataclass
class OperationalConfig:
    """Configuration for operational parameters."""
    max_retries: int = 3
    retry_delay: float = 1.0
    default_window_days: int = DEFAULT_WINDOW_DAYS
    preload_concurrency: int = 10


@dataclass
class SessionConfig:
    """Where the bearer token survives between runs."""
    token_file: Path = field(default_factory=lambda: Path("data/session/auth_token"))


@dataclass
class Config:
    """
    Main configuration class that aggregates all configuration sections.

    Loads configuration from environment variables with .env file support.
    """
    gateway: Optional[GatewayConfig] = None
    operational: OperationalConfig = field(default_factory=OperationalConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    # Paths
    log_dir: Path = field(default_factory=lambda: Path("data/logs"))

    def __post_init__(self):
        """Load configuration from environment after initialization."""
        env_file = Path(".env")
        if env_file.exists():
            load_dotenv(env_file)

        self.gateway = GatewayConfig(
            base_url=self._get_required_env("SERVICEWATCH_API_URL").rstrip("/"),
            timeout_seconds=float(os.getenv("SERVICEWATCH_TIMEOUT", "15"))
        )

        self.operational = OperationalConfig(
            max_retries=int(os.getenv("MAX_RETRIES", "3")),
            retry_delay=float(os.getenv("RETRY_DELAY", "1.0")),
            default_window_days=int(os.getenv("DEFAULT_WINDOW_DAYS", str(DEFAULT_WINDOW_DAYS))),
            preload_concurrency=int(os.getenv("PRELOAD_CONCURRENCY", "10"))
        )

        token_file = os.getenv("SERVICEWATCH_TOKEN_FILE")
        if token_file:
            self.session = SessionConfig(token_file=Path(token_file))

        log_dir = os.getenv("SERVICEWATCH_LOG_DIR")
        if log_dir:
            self.log_dir = Path(log_dir)

        self._validate()

    def _get_required_env(self, key: str) -> str:
        """
        Get a required environment variable.

        Args:
            key: Environment variable name

        Returns:
            Environment variable value

        Raises:
            ValueError: If the environment variable is not set
        """
        value = os.getenv(key)
        if value is None or not value.strip():
            raise ValueError(f"Required environment variable {key} is not set")
        return value.strip()

    def _validate(self) -> None:
        """Reject values the store cannot work with."""
        if self.operational.max_retries < 1:
            raise ValueError("MAX_RETRIES must be at least 1")
        if self.operational.preload_concurrency < 1:
            raise ValueError("PRELOAD_CONCURRENCY must be at least 1")
        if self.operational.default_window_days < 1:
            raise ValueError("DEFAULT_WINDOW_DAYS must be at least 1")
