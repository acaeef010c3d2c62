"""
Recovery scanner for s3wal.

After a restart the only durable state is the set of stored objects. The
scanner lists every key, picks the lexically greatest one and reads it,
reconstructing the log watermark without any index object.

Invariants:
    - Listing order is never trusted; the maximum is tracked explicitly
    - The scan ends only when the store returns a page without a token
    - An empty log yields None, not an error
    - The result is a snapshot; appends racing with the scan may be missed

How to change safely:
    - The scan costs one list call per page of keys. A separately
      maintained watermark object would make recovery O(1) but must then
      be kept consistent with appends.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, AsyncIterator, Optional, Set

from .errors import ListUnavailableError, ReadError, RecoveryReadError, StoreError
from .record import Record
from .store.base import ObjectStore
from .ulid import is_canonical

if TYPE_CHECKING:
    from .wal import ObjectStoreWal

logger = logging.getLogger(__name__)


class RecoveryScanner:
    """Finds the last record of a log by scanning its keys.

    Attributes:
        store: Object store to list
        wal: Log used to read the winning record
        prefix: Listing prefix

    Example:
        >>> scanner = RecoveryScanner(store, wal)
        >>> record = await scanner.last_record()
    """

    def __init__(self, store: ObjectStore, wal: "ObjectStoreWal", prefix: str = "") -> None:
        self.store = store
        self.wal = wal
        self.prefix = prefix

    async def iter_keys(self) -> AsyncIterator[str]:
        """Yield every log key in the store, page by page.

        Keys are yielded in the order the store lists them. Keys that are
        not canonical ULIDs do not belong to the log and are skipped.

        Raises:
            ListUnavailableError: If a listing call fails or the store
                hands out a page token twice
        """
        token: Optional[str] = None
        seen_tokens: Set[str] = set()
        page = 0

        while True:
            try:
                result = await self.store.list_keys(self.prefix, token)
            except StoreError as e:
                logger.error(
                    "Listing failed during recovery",
                    extra={"page": page, "prefix": self.prefix, "error": e.message},
                )
                raise ListUnavailableError(
                    f"Failed to list page {page}: {e.message}", page=page
                ) from e

            for key in result.keys:
                if is_canonical(key):
                    yield key
                else:
                    logger.warning("Skipping non-log key", extra={"key": key})

            page += 1
            token = result.next_token
            if token is None:
                return
            if token in seen_tokens:
                raise ListUnavailableError(
                    f"Store repeated page token {token!r}", page=page
                )
            seen_tokens.add(token)

    async def last_key(self) -> Optional[str]:
        """Lexically greatest log key, or None if the log is empty."""
        last: Optional[str] = None
        count = 0
        async for key in self.iter_keys():
            count += 1
            if last is None or key > last:
                last = key

        logger.debug(
            "Recovery scan complete",
            extra={"keys": count, "last_key": last, "prefix": self.prefix},
        )
        return last

    async def last_record(self) -> Optional[Record]:
        """Read the most recently appended record.

        Returns:
            The record under the greatest key, or None for an empty log

        Raises:
            ListUnavailableError: If listing the store failed
            RecoveryReadError: If the winning record could not be read,
                decoded or validated
        """
        key = await self.last_key()
        if key is None:
            logger.info("Recovery found an empty log", extra={"prefix": self.prefix})
            return None

        try:
            record = await self.wal.read(key)
        except ReadError as e:
            raise RecoveryReadError(key, e) from e

        logger.info(
            "Recovered log watermark",
            extra={"last_key": key, "size": len(record.data)},
        )
        return record
