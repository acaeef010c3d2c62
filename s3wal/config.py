"""
Configuration management for s3wal.

All configuration is done via environment variables and passed once, as
immutable values, to the constructors that need it. The log core never
reads the environment itself.

Invariants:
    - All settings have sensible defaults for local development (MinIO)
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep every section frozen
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class StoreBackend(Enum):
    """Supported object store backends."""

    MEMORY = "memory"
    S3 = "s3"


@dataclass(frozen=True)
class S3Config:
    """S3 (or S3-compatible) object store configuration.

    Attributes:
        bucket: Bucket holding the log's objects
        region: AWS region
        endpoint_url: Custom endpoint URL (for MinIO)
        access_key_id: Access key ID (optional, uses AWS credential chain)
        secret_access_key: Secret access key (optional)
        create_bucket: Whether to create the bucket on connect if missing
    """

    bucket: str = "s3wal-dev"
    region: str = "us-east-1"
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = field(default=None, repr=False)
    create_bucket: bool = False

    @classmethod
    def from_env(cls) -> S3Config:
        """Load configuration from environment variables."""
        return cls(
            bucket=os.getenv("S3_BUCKET", "s3wal-dev"),
            region=os.getenv("S3_REGION", os.getenv("AWS_REGION", "us-east-1")),
            endpoint_url=os.getenv("S3_ENDPOINT"),
            access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            create_bucket=_env_bool("S3_CREATE_BUCKET", "false"),
        )


@dataclass(frozen=True)
class WalSettings:
    """Log behaviour settings.

    Attributes:
        list_prefix: Prefix passed to every listing during recovery
        list_page_size: Maximum keys requested per listing page
    """

    list_prefix: str = ""
    list_page_size: int = 1000

    @classmethod
    def from_env(cls) -> WalSettings:
        """Load configuration from environment variables."""
        return cls(
            list_prefix=os.getenv("WAL_LIST_PREFIX", ""),
            list_page_size=int(os.getenv("WAL_LIST_PAGE_SIZE", "1000")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass(frozen=True)
class WalConfig:
    """Complete configuration.

    Attributes:
        backend: Which object store backend to use
        s3: S3 configuration (if backend is S3)
        wal: Log behaviour settings
        observability: Logging configuration
    """

    backend: StoreBackend = StoreBackend.S3
    s3: S3Config = field(default_factory=S3Config)
    wal: WalSettings = field(default_factory=WalSettings)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> WalConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is missing or invalid.
        """
        backend_str = os.getenv("WAL_STORE_BACKEND", "s3").lower()
        try:
            backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid WAL_STORE_BACKEND '{backend_str}'. Must be one of: memory, s3"
            )

        config = cls(
            backend=backend,
            s3=S3Config.from_env(),
            wal=WalSettings.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.backend == StoreBackend.S3 and not self.s3.bucket:
            raise ValueError("S3_BUCKET is required when WAL_STORE_BACKEND=s3")

        if bool(self.s3.access_key_id) != bool(self.s3.secret_access_key):
            raise ValueError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together"
            )

        if not 1 <= self.wal.list_page_size <= 1000:
            raise ValueError("WAL_LIST_PAGE_SIZE must be between 1 and 1000")

        if self.observability.log_format not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Configuration loaded",
            extra={
                "backend": self.backend.value,
                "s3_bucket": self.s3.bucket if self.backend == StoreBackend.S3 else None,
                "s3_endpoint": self.s3.endpoint_url or "AWS",
                "s3_region": self.s3.region,
                "credentials": "static" if self.s3.access_key_id else "default-chain",
                "list_prefix": self.wal.list_prefix,
                "log_level": self.observability.log_level,
            },
        )
