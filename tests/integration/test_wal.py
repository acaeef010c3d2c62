"""
Integration tests for ObjectStoreWal with the in-memory store.

Tests cover:
- append/read round trips
- Storage key and value format
- Not-found, corrupt and checksum-mismatch reads
- Store failures on append and read
- Concurrent appends
"""

import asyncio

import pytest

from s3wal.errors import (
    AppendError,
    ChecksumMismatchError,
    CorruptRecordError,
    DecodeError,
    ReadError,
    RecordNotFoundError,
    StoreError,
    StoreUnavailableError,
    TruncatedRecordError,
)
from s3wal.record import CHECKSUM_SIZE, compute_checksum, encode
from s3wal.store import InMemoryObjectStore
from s3wal.ulid import Ulid, UlidGenerator, is_canonical
from s3wal.wal import ObjectStoreWal


class TestObjectStoreWal:
    """Integration tests for append and read."""

    @pytest.fixture
    def store(self):
        return InMemoryObjectStore()

    @pytest.fixture
    def wal(self, store):
        return ObjectStoreWal(store)

    @pytest.mark.asyncio
    async def test_append_then_read(self, wal):
        ulid = await wal.append(b"Hello, MinIO!")
        record = await wal.read(ulid)

        assert record.ulid == ulid
        assert record.data == b"Hello, MinIO!"
        assert record.validate_checksum()

    @pytest.mark.asyncio
    async def test_read_by_string(self, wal):
        ulid = await wal.append(b"data")
        record = await wal.read(str(ulid))
        assert record.ulid == ulid

    @pytest.mark.asyncio
    async def test_read_by_lowercase_string(self, wal):
        ulid = await wal.append(b"data")
        record = await wal.read(str(ulid).lower())

        assert record.ulid == ulid
        assert record.data == b"data"

    @pytest.mark.asyncio
    async def test_read_invalid_id_is_not_found(self, wal, store):
        await wal.append(b"data")

        with pytest.raises(RecordNotFoundError) as exc_info:
            await wal.read("not-a-ulid")

        assert exc_info.value.key == "not-a-ulid"
        assert store.calls["get"] == 0

    @pytest.mark.asyncio
    async def test_append_writes_one_object(self, wal, store):
        ulid = await wal.append(b"payload")

        assert store.keys() == [str(ulid)]
        assert is_canonical(store.keys()[0])

    @pytest.mark.asyncio
    async def test_stored_value_layout(self, wal, store):
        ulid = await wal.append(b"payload")
        raw = store.raw(str(ulid))

        assert raw[:CHECKSUM_SIZE] == compute_checksum(b"payload")
        assert raw[CHECKSUM_SIZE:] == b"payload"

    @pytest.mark.asyncio
    async def test_empty_payload(self, wal):
        ulid = await wal.append(b"")
        record = await wal.read(ulid)
        assert record.data == b""
        assert record.validate_checksum()

    @pytest.mark.asyncio
    async def test_large_payload(self, wal):
        payload = b"\xab" * (2 * 1024 * 1024)
        ulid = await wal.append(payload)

        record = await wal.read(ulid)

        assert record.data == payload

    @pytest.mark.asyncio
    async def test_append_uses_generator(self, store):
        gen = UlidGenerator(clock=lambda: 1_700_000_000_000)
        wal = ObjectStoreWal(store, generator=gen)

        ulid = await wal.append(b"x")

        assert ulid.timestamp_ms == 1_700_000_000_000

    @pytest.mark.asyncio
    async def test_read_missing_is_not_found(self, wal):
        """A never-appended id is reported as not found, nothing else."""
        missing = UlidGenerator().next_id()

        with pytest.raises(RecordNotFoundError) as exc_info:
            await wal.read(missing)

        assert exc_info.value.key == str(missing)
        assert not isinstance(exc_info.value, (CorruptRecordError, ChecksumMismatchError))

    @pytest.mark.asyncio
    async def test_read_missing_on_non_empty_log(self, wal):
        await wal.append(b"one")
        await wal.append(b"two")

        with pytest.raises(RecordNotFoundError):
            await wal.read(Ulid(0, 0))

    @pytest.mark.asyncio
    async def test_read_truncated_value(self, wal, store):
        ulid = await wal.append(b"payload")
        store.corrupt(str(ulid), b"short")

        with pytest.raises(CorruptRecordError) as exc_info:
            await wal.read(ulid)

        assert isinstance(exc_info.value.decode_error, TruncatedRecordError)
        assert isinstance(exc_info.value.__cause__, DecodeError)

    @pytest.mark.asyncio
    async def test_read_flipped_payload_bit(self, wal, store):
        ulid = await wal.append(b"payload")
        tampered = bytearray(store.raw(str(ulid)))
        tampered[-1] ^= 0x01
        store.corrupt(str(ulid), bytes(tampered))

        with pytest.raises(ChecksumMismatchError) as exc_info:
            await wal.read(ulid)

        assert exc_info.value.expected == compute_checksum(b"payload").hex()
        assert exc_info.value.expected != exc_info.value.actual

    @pytest.mark.asyncio
    async def test_read_replaced_payload(self, wal, store):
        first = await wal.append(b"first")
        second = await wal.append(b"second")

        # Value of one record stored under another record's key
        store.corrupt(str(first), store.raw(str(second)) + b"!")

        with pytest.raises(ChecksumMismatchError):
            await wal.read(first)

    @pytest.mark.asyncio
    async def test_append_store_failure(self, wal, store):
        store.inject_failure("put")

        with pytest.raises(StoreUnavailableError) as exc_info:
            await wal.append(b"payload")

        assert isinstance(exc_info.value, AppendError)
        assert isinstance(exc_info.value.__cause__, StoreError)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_append_does_not_retry(self, wal, store):
        store.inject_failure("put")

        with pytest.raises(StoreUnavailableError):
            await wal.append(b"payload")

        assert store.calls["put"] == 1

    @pytest.mark.asyncio
    async def test_read_store_failure(self, wal, store):
        ulid = await wal.append(b"payload")
        store.inject_failure("get")

        with pytest.raises(StoreUnavailableError) as exc_info:
            await wal.read(ulid)

        assert isinstance(exc_info.value, ReadError)
        assert not isinstance(exc_info.value, RecordNotFoundError)

    @pytest.mark.asyncio
    async def test_concurrent_appends(self, wal, store):
        payloads = [f"event-{i}".encode() for i in range(50)]

        ulids = await asyncio.gather(*(wal.append(p) for p in payloads))

        assert len(set(ulids)) == 50
        assert len(store) == 50
        records = await asyncio.gather(*(wal.read(u) for u in ulids))
        assert [r.data for r in records] == payloads

    @pytest.mark.asyncio
    async def test_sequential_appends_sort_in_order(self, store):
        ticks = iter(range(1000, 1010))
        wal = ObjectStoreWal(store, generator=UlidGenerator(clock=lambda: next(ticks)))

        ulids = [await wal.append(f"{i}".encode()) for i in range(10)]

        assert store.keys() == [str(u) for u in ulids]

    @pytest.mark.asyncio
    async def test_encoded_record_readable(self, wal, store):
        """Objects written by encode() directly are readable by the log."""
        from s3wal.record import new_record

        record = new_record(b"external")
        await store.put(record.key, encode(record))

        assert await wal.read(record.ulid) == record
