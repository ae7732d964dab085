"""Configuration management for the tag reader."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigError


# File extensions the CLI accepts when given a directory
SUPPORTED_FORMATS = {".m4a", ".m4b", ".mp4"}


@dataclass
class S3Config:
    """S3-compatible object storage configuration.

    Credentials are optional; when unset boto3 falls back to its default
    credential chain.
    """

    key: str | None = None
    secret: str | None = None
    region: str | None = None
    endpoint: str | None = None
    connect_timeout: int = 60
    read_timeout: int = 300
    max_attempts: int = 3


@dataclass
class HttpConfig:
    """HTTP range-request configuration."""

    timeout: float = 15.0
    chunk_size: int = 1024  # ranges are rounded up to this many bytes
    user_agent: str = "mp4tags/0.1"

    @property
    def headers(self) -> dict:
        """Default headers sent with every request."""
        return {"User-Agent": self.user_agent}


@dataclass
class Config:
    """Main configuration container."""

    s3: S3Config = field(default_factory=S3Config)
    http: HttpConfig = field(default_factory=HttpConfig)
    max_workers: int = 4

    @classmethod
    def from_environment(cls, env_path: Path | None = None) -> "Config":
        """Load configuration from environment variables."""
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        return cls(
            s3=S3Config(
                key=os.getenv("MP4TAGS_S3_KEY"),
                secret=os.getenv("MP4TAGS_S3_SECRET"),
                region=os.getenv("MP4TAGS_S3_REGION"),
                endpoint=os.getenv("MP4TAGS_S3_ENDPOINT"),
            ),
            http=HttpConfig(
                timeout=_env_number("MP4TAGS_HTTP_TIMEOUT", 15.0, float),
                chunk_size=_env_number("MP4TAGS_HTTP_CHUNK_SIZE", 1024, int),
                user_agent=os.getenv("MP4TAGS_HTTP_USER_AGENT", "mp4tags/0.1"),
            ),
            max_workers=_env_number("MP4TAGS_WORKERS", 4, int),
        )

    def validate(self) -> None:
        """Validate the configuration."""
        if self.max_workers < 1:
            raise ConfigError(f"Worker count must be positive, got {self.max_workers}")
        if self.http.chunk_size < 1:
            raise ConfigError(f"HTTP chunk size must be positive, got {self.http.chunk_size}")
        if self.http.timeout <= 0:
            raise ConfigError(f"HTTP timeout must be positive, got {self.http.timeout}")
        self._validate_s3()

    def _validate_s3(self) -> None:
        """Validate S3 configuration."""
        logger = logging.getLogger(__name__)

        # A key without a secret (or the reverse) is always a mistake
        if bool(self.s3.key) != bool(self.s3.secret):
            raise ConfigError("MP4TAGS_S3_KEY and MP4TAGS_S3_SECRET must be set together")

        if self.s3.endpoint and not self.s3.endpoint.startswith(("http://", "https://")):
            logger.warning(
                f"S3 endpoint '{self.s3.endpoint}' has no scheme; boto3 may reject it"
            )


def _env_number(name: str, default, cast):
    """Read a numeric environment variable, raising ConfigError on junk."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from None


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
