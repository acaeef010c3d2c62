"""
Write-ahead log backed by an object store.

ObjectStoreWal turns a store that only offers PUT/GET/LIST into an ordered,
append-only log. Each append writes exactly one object whose key is the
record's ULID, so the log order is the lexical order of the keys.

Invariants:
    - append() returns only after the store acknowledged the put
    - Every record returned by read() has a validated checksum
    - Store failures, missing records, corrupt values and checksum
      mismatches are raised as distinct exception types
    - No operation retries; every failure is surfaced immediately

How to change safely:
    - Concurrent appends are not mutually excluded; a colliding key would
      overwrite silently. Closing that gap needs conditional writes.
    - Keep read() as the single path that validates checksums
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from .errors import (
    ChecksumMismatchError,
    CorruptRecordError,
    DecodeError,
    ObjectNotFoundError,
    RecordNotFoundError,
    StoreError,
    StoreUnavailableError,
)
from .record import Record, compute_checksum, decode, encode, new_record
from .recovery import RecoveryScanner
from .store.base import ObjectStore
from .ulid import Ulid, UlidGenerator

logger = logging.getLogger(__name__)


class ObjectStoreWal:
    """Append-only log stored one object per record.

    Attributes:
        store: Object store collaborator
        generator: ULID generator for new records
        list_prefix: Prefix used when scanning keys for recovery

    Example:
        >>> wal = ObjectStoreWal(InMemoryObjectStore())
        >>> ulid = await wal.append(b"Hello, MinIO!")
        >>> record = await wal.read(ulid)
        >>> record.data
        b'Hello, MinIO!'
    """

    def __init__(
        self,
        store: ObjectStore,
        generator: Optional[UlidGenerator] = None,
        list_prefix: str = "",
    ) -> None:
        self.store = store
        self.generator = generator or UlidGenerator()
        self.list_prefix = list_prefix

    async def append(self, data: bytes) -> Ulid:
        """Append a payload to the log.

        Args:
            data: Payload bytes (may be empty)

        Returns:
            Ulid of the written record

        Raises:
            StoreUnavailableError: If the store rejected or failed the put
        """
        record = new_record(data, self.generator)
        key = record.key

        try:
            await self.store.put(key, encode(record))
        except StoreError as e:
            logger.error(
                "Append failed",
                extra={"key": key, "size": len(record.data), "error": e.message},
            )
            raise StoreUnavailableError(
                f"Failed to append record {key}: {e.message}", key=key
            ) from e

        logger.debug("Record appended", extra={"key": key, "size": len(record.data)})
        return record.ulid

    async def read(self, ulid: Union[Ulid, str]) -> Record:
        """Read and validate a record.

        Args:
            ulid: Record id, as a Ulid or its string rendering in either case

        Returns:
            The decoded record with a validated checksum

        Raises:
            RecordNotFoundError: If no record is stored under the id, or the
                string is not a ULID at all
            CorruptRecordError: If the stored value cannot be decoded
            ChecksumMismatchError: If the payload does not match its checksum
            StoreUnavailableError: If the store failed the get
        """
        if isinstance(ulid, str):
            try:
                ulid = Ulid.from_string(ulid)
            except ValueError as e:
                raise RecordNotFoundError(ulid) from e
        key = ulid.to_string()

        try:
            raw = await self.store.get(key)
        except ObjectNotFoundError as e:
            raise RecordNotFoundError(key) from e
        except StoreError as e:
            logger.error("Read failed", extra={"key": key, "error": e.message})
            raise StoreUnavailableError(
                f"Failed to read record {key}: {e.message}", key=key
            ) from e

        try:
            record = decode(ulid, raw)
        except DecodeError as e:
            logger.error(
                "Stored record is corrupt",
                extra={"key": key, "reason": e.code, "size": len(raw)},
            )
            raise CorruptRecordError(key, e) from e

        if not record.validate_checksum():
            actual = compute_checksum(record.data).hex()
            logger.error(
                "Checksum mismatch, record data is not trustworthy",
                extra={"key": key, "expected": record.checksum_hex, "actual": actual},
            )
            raise ChecksumMismatchError(key, expected=record.checksum_hex, actual=actual)

        return record

    async def last_record(self) -> Optional[Record]:
        """Recover the most recently appended record.

        Returns:
            The record with the greatest key, or None for an empty log

        Raises:
            ListUnavailableError: If listing the store failed
            RecoveryReadError: If reading the last record failed
        """
        return await self.scanner().last_record()

    def scanner(self) -> RecoveryScanner:
        """Recovery scanner over this log's keys."""
        return RecoveryScanner(self.store, self, prefix=self.list_prefix)
