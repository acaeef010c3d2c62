"""
ULID - Universally Unique Lexicographically Sortable Identifier.

Every log record is identified by a ULID, and its 26-character rendering is
used verbatim as the record's storage key.

Format:
    48-bit unix_ts_ms | 80-bit randomness
    rendered big-endian as 26 Crockford base-32 characters

Invariants:
    - Lexical order of the rendering equals (timestamp_ms, randomness) order
    - Ids from different milliseconds sort by time
    - Ids from the same millisecond sort by their random bits only
    - The first rendered character is never above '7' (128 bits in 130)
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ENCODED_LENGTH = 26
BINARY_LENGTH = 16

TIMESTAMP_BITS = 48
RANDOM_BITS = 80
MAX_TIMESTAMP = (1 << TIMESTAMP_BITS) - 1
MAX_RANDOMNESS = (1 << RANDOM_BITS) - 1

_DECODING = {char: index for index, char in enumerate(ENCODING)}


@dataclass(frozen=True, order=True)
class Ulid:
    """A 128-bit sortable identifier.

    Attributes:
        timestamp_ms: Milliseconds since the Unix epoch (48 bits)
        randomness: Random tie-breaker (80 bits)

    Example:
        >>> ulid = Ulid.from_string("01ARZ3NDEKTSV4RRFFQ69G5FAV")
        >>> ulid.timestamp_ms
        1469922850259
    """

    timestamp_ms: int
    randomness: int

    def __post_init__(self) -> None:
        if not 0 <= self.timestamp_ms <= MAX_TIMESTAMP:
            raise ValueError(f"ULID timestamp out of range: {self.timestamp_ms}")
        if not 0 <= self.randomness <= MAX_RANDOMNESS:
            raise ValueError("ULID randomness out of range")

    @property
    def value(self) -> int:
        """The identifier as a single 128-bit integer."""
        return (self.timestamp_ms << RANDOM_BITS) | self.randomness

    @property
    def created_at(self) -> datetime:
        """Generation time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)

    def to_string(self) -> str:
        """Render as 26 Crockford base-32 characters."""
        value = self.value
        chars = []
        for _ in range(ENCODED_LENGTH):
            value, remainder = divmod(value, 32)
            chars.append(ENCODING[remainder])
        return "".join(reversed(chars))

    def to_bytes(self) -> bytes:
        """Big-endian 16-byte binary form."""
        return self.value.to_bytes(BINARY_LENGTH, byteorder="big")

    @classmethod
    def from_int(cls, value: int) -> Ulid:
        """Build from a 128-bit integer."""
        if not 0 <= value < (1 << 128):
            raise ValueError("ULID value must fit in 128 bits")
        return cls(timestamp_ms=value >> RANDOM_BITS, randomness=value & MAX_RANDOMNESS)

    @classmethod
    def from_bytes(cls, data: bytes) -> Ulid:
        """Parse the 16-byte binary form."""
        if len(data) != BINARY_LENGTH:
            raise ValueError(f"ULID must be {BINARY_LENGTH} bytes, got {len(data)}")
        return cls.from_int(int.from_bytes(data, byteorder="big"))

    @classmethod
    def from_string(cls, text: str) -> Ulid:
        """Parse the 26-character rendering (case-insensitive).

        Raises:
            ValueError: If the text has the wrong length, contains a
                character outside the alphabet, or overflows 128 bits
        """
        if len(text) != ENCODED_LENGTH:
            raise ValueError(f"ULID must be {ENCODED_LENGTH} characters, got {len(text)}")

        value = 0
        for char in text.upper():
            digit = _DECODING.get(char)
            if digit is None:
                raise ValueError(f"Invalid ULID character: {char!r}")
            value = value * 32 + digit

        if value >> 128:
            raise ValueError(f"ULID overflows 128 bits: {text}")
        return cls.from_int(value)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Ulid({self.to_string()})"


def is_canonical(text: str) -> bool:
    """Whether ``text`` is a ULID in its canonical (uppercase) rendering."""
    try:
        return Ulid.from_string(text).to_string() == text
    except ValueError:
        return False


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class UlidGenerator:
    """Produces ULIDs from a clock and a random source.

    The generator is stateless apart from its two sources and never blocks.
    Failures of the clock propagate to the caller: the ordering guarantee
    of the log depends on it.

    Attributes:
        clock: Callable returning milliseconds since the Unix epoch
        random_source: Callable returning ``n`` random bytes

    Example:
        >>> gen = UlidGenerator(clock=lambda: 1_700_000_000_000)
        >>> gen.next_id().timestamp_ms
        1700000000000
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        random_source: Optional[Callable[[int], bytes]] = None,
    ) -> None:
        self.clock = clock or _wall_clock_ms
        self.random_source = random_source or os.urandom

    def next_id(self) -> Ulid:
        """Generate the next identifier."""
        timestamp_ms = self.clock()
        randomness = int.from_bytes(self.random_source(RANDOM_BITS // 8), byteorder="big")
        return Ulid(timestamp_ms=timestamp_ms, randomness=randomness)


_default_generator = UlidGenerator()


def new_ulid() -> Ulid:
    """Generate a ULID from the wall clock and os.urandom."""
    return _default_generator.next_id()
