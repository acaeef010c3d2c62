"""
Base protocol and types for the object store abstraction.

The log only needs three capabilities from its storage: put a value under a
key, get a value by key, and list keys page by page. This module defines the
ObjectStore protocol that every backend implements.

Invariants:
    - put() returns only after the object is durably stored
    - get() raises ObjectNotFoundError, never a generic StoreError, for a
      missing key
    - list_keys() pages are not assumed to be sorted, or returned in order
    - A page without next_token is the last one

How to change safely:
    - Protocol changes require updating all implementations
    - Keep the in-memory store behaviorally identical to S3 for the
      three capabilities
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, runtime_checkable

from ..errors import ObjectNotFoundError, StoreError

__all__ = ["ListPage", "ObjectStore", "ObjectNotFoundError", "StoreError"]


@dataclass(frozen=True)
class ListPage:
    """One page of a key listing.

    Attributes:
        keys: Keys on this page, in whatever order the store returned them
        next_token: Opaque cursor for the next page, None on the last page
    """

    keys: List[str] = field(default_factory=list)
    next_token: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return self.next_token is None


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol for key-value object storage backends.

    Implementations hold no per-call mutable state and are safe to share
    between concurrent operations.

    Example:
        >>> store = InMemoryObjectStore()
        >>> await store.put("01ARZ3NDEKTSV4RRFFQ69G5FAV", b"...")
        >>> page = await store.list_keys()
    """

    @abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key``.

        Raises:
            StoreError: On network, auth or server failure
        """
        ...

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Fetch the value stored under ``key``.

        Raises:
            ObjectNotFoundError: If no object exists under the key
            StoreError: On network, auth or server failure
        """
        ...

    @abstractmethod
    async def list_keys(
        self,
        prefix: str = "",
        page_token: Optional[str] = None,
    ) -> ListPage:
        """List one page of keys starting with ``prefix``.

        Args:
            prefix: Key prefix filter
            page_token: Cursor returned by the previous page, None for the first

        Raises:
            StoreError: On network, auth or server failure
        """
        ...
