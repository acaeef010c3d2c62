"""
In-memory object store implementation for testing.

This module provides a simple in-memory backend for:
- Unit tests
- Integration tests of the WAL and recovery scanner
- Local development without MinIO or S3

Unlike S3, listing can be made deliberately hostile: pages can be returned
in reverse or shuffled order, and keys inside a page shuffled, so that
callers are tested against stores that don't guarantee ordering.

Invariants:
    - All data is lost on process exit
    - Missing keys raise ObjectNotFoundError like S3's NoSuchKey
    - Safe for concurrent use from multiple coroutines
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum
from typing import Dict, List, Optional

from .base import ListPage, ObjectNotFoundError, StoreError

logger = logging.getLogger(__name__)


class PageOrder(Enum):
    """Order in which the in-memory store hands out listing pages."""

    ASCENDING = "ascending"
    DESCENDING = "descending"
    SHUFFLED = "shuffled"


class InMemoryObjectStore:
    """In-memory implementation of ObjectStore.

    Page tokens are page indexes rendered as strings. With a non-ascending
    page order the store still hands out every key exactly once per
    listing, just not in key order.

    Attributes:
        page_size: Maximum keys per listing page
        page_order: Order of pages within one listing
        shuffle_keys: Whether keys within a page are shuffled

    Example:
        >>> store = InMemoryObjectStore(page_size=2, page_order=PageOrder.DESCENDING)
        >>> await store.put("a", b"1")
        >>> page = await store.list_keys()
    """

    def __init__(
        self,
        page_size: int = 1000,
        page_order: PageOrder = PageOrder.ASCENDING,
        shuffle_keys: bool = False,
        seed: Optional[int] = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.page_size = page_size
        self.page_order = page_order
        self.shuffle_keys = shuffle_keys
        self._objects: Dict[str, bytes] = {}
        self._lock = asyncio.Lock()
        self._seed = seed
        self._random = random.Random(seed)
        self._failures: Dict[str, StoreError] = {}
        self.calls: Dict[str, int] = {"put": 0, "get": 0, "list": 0}

    async def put(self, key: str, value: bytes) -> None:
        """Store a copy of ``value`` under ``key``."""
        self.calls["put"] += 1
        self._maybe_fail("put", key)
        async with self._lock:
            self._objects[key] = bytes(value)
        logger.debug("Object stored in memory", extra={"key": key, "size": len(value)})

    async def get(self, key: str) -> bytes:
        """Return the value stored under ``key``."""
        self.calls["get"] += 1
        self._maybe_fail("get", key)
        async with self._lock:
            try:
                return self._objects[key]
            except KeyError:
                raise ObjectNotFoundError(key) from None

    async def list_keys(
        self,
        prefix: str = "",
        page_token: Optional[str] = None,
    ) -> ListPage:
        """Return one page of keys matching ``prefix``."""
        self.calls["list"] += 1
        self._maybe_fail("list", prefix)

        async with self._lock:
            keys = sorted(k for k in self._objects if k.startswith(prefix))

        pages = [keys[i:i + self.page_size] for i in range(0, len(keys), self.page_size)]
        if not pages:
            return ListPage(keys=[], next_token=None)

        order = self._page_sequence(len(pages), prefix)

        position = 0
        if page_token is not None:
            try:
                position = int(page_token)
            except ValueError:
                raise StoreError(
                    f"Invalid page token {page_token!r}", operation="list"
                ) from None
            if not 0 <= position < len(order):
                raise StoreError(f"Page token out of range: {page_token}", operation="list")

        page_keys = list(pages[order[position]])
        if self.shuffle_keys:
            self._random.shuffle(page_keys)

        next_token = str(position + 1) if position + 1 < len(order) else None
        return ListPage(keys=page_keys, next_token=next_token)

    def _page_sequence(self, count: int, prefix: str) -> List[int]:
        """Page indexes in hand-out order, stable across one listing."""
        indexes = list(range(count))
        if self.page_order == PageOrder.DESCENDING:
            indexes.reverse()
        elif self.page_order == PageOrder.SHUFFLED:
            # Seeded per (prefix, count) so every page request of a listing
            # sees the same permutation.
            random.Random(f"{self._seed}:{prefix}:{count}").shuffle(indexes)
        return indexes

    def _maybe_fail(self, operation: str, key: str) -> None:
        error = self._failures.pop(operation, None)
        if error is not None:
            logger.debug(
                "Injected store failure",
                extra={"operation": operation, "key": key},
            )
            raise error

    # Testing helpers

    def inject_failure(self, operation: str, error: Optional[StoreError] = None) -> None:
        """Make the next ``operation`` ("put", "get" or "list") raise.

        Args:
            operation: Operation to fail
            error: Error to raise (default: a generic StoreError)
        """
        if operation not in self.calls:
            raise ValueError(f"Unknown operation: {operation}")
        self._failures[operation] = error or StoreError(
            f"Injected {operation} failure", operation=operation
        )

    def corrupt(self, key: str, value: bytes) -> None:
        """Overwrite a stored object, bypassing the log (testing helper)."""
        if key not in self._objects:
            raise KeyError(key)
        self._objects[key] = bytes(value)

    def raw(self, key: str) -> bytes:
        """Return a stored value without counting a get (testing helper)."""
        return self._objects[key]

    def keys(self) -> List[str]:
        """All stored keys in sorted order (testing helper)."""
        return sorted(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def clear(self) -> None:
        """Remove every object (testing helper)."""
        self._objects.clear()
