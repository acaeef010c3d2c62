"""
Record codec for s3wal.

A Record is the unit of the log: an id, an immutable payload and a SHA-256
checksum of the payload computed when the record is created.

Wire format (object value bytes):
    checksum (32 bytes) || payload (remaining bytes)

The id is not part of the value; it is carried by the storage key. The
payload needs no length prefix since it is delimited by the object size.

Invariants:
    - checksum == sha256(data) for every record built by new_record()
    - decode(key, encode(r)) == r for every record r
    - decode() never checks the checksum, validate_checksum() does, so that
      callers can tell a broken wire format from corrupted data

How to change safely:
    - The wire format is shared with every object already stored; a new
      layout needs a new key namespace or a version marker
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import MalformedRecordError, TruncatedRecordError
from .ulid import Ulid, UlidGenerator, new_ulid

CHECKSUM_SIZE = 32

# 16 bytes of ULID plus the checksum field
METADATA_OVERHEAD = 16 + CHECKSUM_SIZE


def compute_checksum(data: bytes) -> bytes:
    """Compute the SHA-256 digest of a payload."""
    return hashlib.sha256(data).digest()


@dataclass(frozen=True, order=True)
class Record:
    """A record in the log.

    Records compare and order by id alone; two records with the same id
    are equal even if their payloads differ.

    Attributes:
        ulid: Record identifier, also the storage key
        data: Payload bytes (may be empty)
        checksum: SHA-256 of ``data``
    """

    ulid: Ulid
    data: bytes = field(compare=False)
    checksum: bytes = field(compare=False)

    @property
    def key(self) -> str:
        """Storage key for this record."""
        return self.ulid.to_string()

    @property
    def checksum_hex(self) -> str:
        return self.checksum.hex()

    def validate_checksum(self) -> bool:
        """Whether the stored checksum matches the payload."""
        return validate_checksum(self)

    def __repr__(self) -> str:
        return (
            f"Record(ulid={self.ulid}, size={len(self.data)}, "
            f"checksum={self.checksum_hex[:12]}...)"
        )


def new_record(data: bytes, generator: Optional[UlidGenerator] = None) -> Record:
    """Create a record with a fresh id and the payload's checksum.

    Args:
        data: Payload bytes
        generator: Optional id generator (default: wall clock + os.urandom)

    Returns:
        Fully formed, immutable Record
    """
    payload = bytes(data)
    ulid = generator.next_id() if generator is not None else new_ulid()
    return Record(ulid=ulid, data=payload, checksum=compute_checksum(payload))


def validate_checksum(record: Record) -> bool:
    """Recompute the payload digest and compare it to the stored checksum."""
    return compute_checksum(record.data) == record.checksum


def encode(record: Record) -> bytes:
    """Serialize a record to its object value."""
    return record.checksum + record.data


def decode(key: Union[Ulid, str], raw: bytes) -> Record:
    """Deserialize an object value stored under ``key``.

    Args:
        key: Storage key (or the Ulid it renders)
        raw: Object value bytes

    Returns:
        Decoded Record. Its checksum has NOT been validated.

    Raises:
        TruncatedRecordError: If raw is shorter than the checksum field
        MalformedRecordError: If the key is not a canonical ULID or the
            value is not bytes
    """
    if isinstance(key, Ulid):
        ulid = key
    else:
        try:
            ulid = Ulid.from_string(key)
        except (TypeError, ValueError) as e:
            raise MalformedRecordError(f"Invalid record key: {e}", key=str(key)) from e
        if ulid.to_string() != key:
            raise MalformedRecordError(f"Record key is not canonical: {key}", key=key)

    if not isinstance(raw, (bytes, bytearray, memoryview)):
        raise MalformedRecordError(
            f"Record value must be bytes, got {type(raw).__name__}", key=str(ulid)
        )

    raw = bytes(raw)
    if len(raw) < CHECKSUM_SIZE:
        raise TruncatedRecordError(len(raw), CHECKSUM_SIZE)

    return Record(
        ulid=ulid,
        data=raw[CHECKSUM_SIZE:],
        checksum=raw[:CHECKSUM_SIZE],
    )
