"""
s3wal - a write-ahead log whose durable storage is an S3-compatible object store.

The object store only offers PUT/GET/LIST, so the log is built from:
- ULIDs: time-ordered ids whose rendering is the storage key of each record
- Records: payload plus SHA-256 checksum, one object per record
- Recovery: a paginated key scan that finds the last record after a restart

Architecture:
    caller ──append(data)──▶ ObjectStoreWal ──put(ulid, checksum||data)──▶ ObjectStore
    caller ──read(ulid)────▶ ObjectStoreWal ──get(ulid)──▶ decode ──▶ validate
    caller ──last_record()─▶ RecoveryScanner ──list_keys()...──▶ max key ──▶ read

Invariants:
    - Lexical key order is generation-time order (millisecond granularity)
    - Every record handed to a caller has a validated checksum
    - Store failures and bad stored data are always distinguishable
    - Nothing is retried; failures surface immediately

How to change safely:
    - The wire format and key format are shared with stored data
    - Keep the log core free of configuration and client construction
"""

from .errors import (
    AppendError,
    ChecksumMismatchError,
    CorruptRecordError,
    DecodeError,
    ListUnavailableError,
    MalformedRecordError,
    ObjectNotFoundError,
    ReadError,
    RecordNotFoundError,
    RecoveryError,
    RecoveryReadError,
    StoreError,
    StoreUnavailableError,
    TruncatedRecordError,
    WalError,
)
from .record import Record, compute_checksum, decode, encode, new_record, validate_checksum
from .recovery import RecoveryScanner
from .ulid import Ulid, UlidGenerator, new_ulid
from .wal import ObjectStoreWal

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Identifiers
    "Ulid",
    "UlidGenerator",
    "new_ulid",
    # Records
    "Record",
    "new_record",
    "encode",
    "decode",
    "validate_checksum",
    "compute_checksum",
    # Log
    "ObjectStoreWal",
    "RecoveryScanner",
    # Errors
    "WalError",
    "StoreError",
    "ObjectNotFoundError",
    "DecodeError",
    "TruncatedRecordError",
    "MalformedRecordError",
    "AppendError",
    "ReadError",
    "StoreUnavailableError",
    "RecordNotFoundError",
    "CorruptRecordError",
    "ChecksumMismatchError",
    "RecoveryError",
    "ListUnavailableError",
    "RecoveryReadError",
]
