"""
Error types for s3wal.

This module defines every exception raised by the log:
- WalError: Base exception
- StoreError / ObjectNotFoundError: Failures reported by the object store
- DecodeError: Wire format violations (truncated or malformed values)
- AppendError / ReadError: Failures of the WAL store operations
- RecoveryError: Failures while reconstructing the log position

Invariants:
    - All errors inherit from WalError
    - "Could not reach storage" and "storage returned bad data" are
      always distinct exception types
    - ChecksumMismatchError is never retried or auto-corrected

How to change safely:
    - Add new error types as subclasses of an existing branch
    - Keep error codes stable, callers may match on them
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class WalError(Exception):
    """Base exception for all s3wal errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "WAL_ERROR"
        self.details = details or {}


# Object store


class StoreError(WalError):
    """The object store failed to serve a request.

    Raised by ObjectStore implementations for network, authentication
    and server-side failures.
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="STORE_ERROR",
            details={"key": key, "operation": operation},
        )
        self.key = key
        self.operation = operation


class ObjectNotFoundError(StoreError):
    """The object store has no object under the requested key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No object stored under key {key!r}", key=key, operation="get")
        self.code = "OBJECT_NOT_FOUND"


# Record codec


class DecodeError(WalError):
    """Stored bytes do not follow the record wire format."""


class TruncatedRecordError(DecodeError):
    """Stored value is shorter than the fixed checksum field."""

    def __init__(self, length: int, required: int) -> None:
        super().__init__(
            f"Record value is {length} bytes, at least {required} required",
            code="RECORD_TRUNCATED",
            details={"length": length, "required": required},
        )
        self.length = length
        self.required = required


class MalformedRecordError(DecodeError):
    """Stored value or its key violates the wire format in any other way."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message, code="RECORD_MALFORMED", details={"key": key})
        self.key = key


# WAL store operations


class AppendError(WalError):
    """Base exception for append failures."""


class ReadError(WalError):
    """Base exception for read failures."""


class StoreUnavailableError(AppendError, ReadError):
    """The object store could not complete a put or get.

    The underlying StoreError is available as ``__cause__``.
    """

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message, code="STORE_UNAVAILABLE", details={"key": key})
        self.key = key


class RecordNotFoundError(ReadError):
    """No record exists under the requested id."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"Record {key} not found",
            code="RECORD_NOT_FOUND",
            details={"key": key},
        )
        self.key = key


class CorruptRecordError(ReadError):
    """The stored value could not be decoded.

    Attributes:
        key: Storage key of the record
        decode_error: The DecodeError raised by the codec
    """

    def __init__(self, key: str, decode_error: DecodeError) -> None:
        super().__init__(
            f"Record {key} is corrupt: {decode_error.message}",
            code="RECORD_CORRUPT",
            details={"key": key, "reason": decode_error.code},
        )
        self.key = key
        self.decode_error = decode_error


class ChecksumMismatchError(ReadError):
    """A well-formed record does not match its own checksum.

    This is evidence of data loss in the storage layer and must not be
    treated as a transient condition.
    """

    def __init__(self, key: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Checksum mismatch for record {key}",
            code="CHECKSUM_MISMATCH",
            details={"key": key, "expected": expected, "actual": actual},
        )
        self.key = key
        self.expected = expected
        self.actual = actual


# Recovery


class RecoveryError(WalError):
    """Base exception for recovery failures."""


class ListUnavailableError(RecoveryError):
    """Listing the object store failed during a recovery scan."""

    def __init__(self, message: str, page: int = 0) -> None:
        super().__init__(message, code="LIST_UNAVAILABLE", details={"page": page})
        self.page = page


class RecoveryReadError(RecoveryError):
    """Reading the winning record of a recovery scan failed.

    Attributes:
        key: Key selected as the last record
        cause: The ReadError raised by the read
    """

    def __init__(self, key: str, cause: ReadError) -> None:
        super().__init__(
            f"Failed to read last record {key}: {cause.message}",
            code="RECOVERY_READ_FAILED",
            details={"key": key, "reason": cause.code},
        )
        self.key = key
        self.cause = cause
