"""
Object store abstraction for s3wal.

This module provides a pluggable storage backend interface supporting:
- S3 and S3-compatible services such as MinIO (production)
- In-memory (for testing)

Invariants:
    - Backends offer exactly put/get/list_keys; no append or ordering
    - Missing keys are reported distinctly from store failures

How to change safely:
    - New backends must implement the ObjectStore protocol
    - Run the WAL integration tests against every backend
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ListPage, ObjectNotFoundError, ObjectStore, StoreError
from .memory import InMemoryObjectStore, PageOrder
from .s3 import S3ObjectStore

if TYPE_CHECKING:
    from ..config import WalConfig


def create_object_store(config: "WalConfig") -> ObjectStore:
    """Factory function to create an object store from configuration.

    Args:
        config: Complete configuration

    Returns:
        Appropriate ObjectStore implementation (not yet connected)

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend

    if config.backend == StoreBackend.S3:
        return S3ObjectStore(config.s3, page_size=config.wal.list_page_size)
    elif config.backend == StoreBackend.MEMORY:
        return InMemoryObjectStore(page_size=config.wal.list_page_size)
    else:
        raise ValueError(f"Unsupported store backend: {config.backend}")


__all__ = [
    # Protocol and types
    "ObjectStore",
    "ListPage",
    "StoreError",
    "ObjectNotFoundError",
    # Factory
    "create_object_store",
    # Implementations
    "S3ObjectStore",
    "InMemoryObjectStore",
    "PageOrder",
]
