"""
Logging setup for s3wal processes.

Library modules only create loggers with ``logging.getLogger(__name__)`` and
attach structured fields through ``extra``; handlers are installed here, once,
by the entry point. JSON output keeps those fields as top-level keys, which is
what log shippers index on.
"""

from __future__ import annotations

import logging
from typing import IO, Optional

import json_log_formatter

from .config import ObservabilityConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Transport libraries that log every request at DEBUG
CLIENT_LOGGERS = ("botocore", "aiobotocore", "urllib3", "aiohttp")


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return json_log_formatter.JSONFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(config: ObservabilityConfig, stream: Optional[IO[str]] = None) -> None:
    """Install one handler on the root logger.

    The ``s3wal`` loggers follow the configured level. Client libraries
    never log below WARNING, even when s3wal runs at DEBUG.

    Args:
        config: Observability configuration
        stream: Destination stream, stderr when omitted
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(_build_formatter(config.log_format))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    logging.getLogger("s3wal").setLevel(level)
    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
