"""
Command line tool for s3wal.

Usage:
    s3wal demo [--count N]
    s3wal append <data>
    s3wal read <ulid>
    s3wal last

Configuration comes from environment variables (see config.py); the
connection options below override them.

Invariants:
    - Exit code 0 on success, 1 on any WalError
    - Secrets are never printed
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from typing import List, Optional

from ..config import ObservabilityConfig, StoreBackend, WalConfig
from ..errors import WalError
from ..logging_setup import setup_logging
from ..record import Record
from ..store import S3ObjectStore, create_object_store
from ..wal import ObjectStoreWal

logger = logging.getLogger(__name__)

DEMO_PAYLOADS = [b"Hello, MinIO!", b"Second record", b"Third record"]


def _format_record(record: Record) -> str:
    try:
        payload = record.data.decode("utf-8")
    except UnicodeDecodeError:
        payload = f"<{len(record.data)} bytes>"
    return f"{record.ulid}  {record.checksum_hex[:16]}  {payload}"


async def run_demo(wal: ObjectStoreWal, count: int) -> None:
    """Append sample records, read them back and recover the watermark."""
    payloads = [DEMO_PAYLOADS[i % len(DEMO_PAYLOADS)] for i in range(count)]

    for payload in payloads:
        ulid = await wal.append(payload)
        print(f"Record appended with ULID: {ulid}")

        record = await wal.read(ulid)
        print(f"Read record: {record.data!r}")
        print("Checksum is valid!")

    last = await wal.last_record()
    if last is None:
        print("Log is empty")
    else:
        print(f"Last record: {_format_record(last)}")


async def run_command(args: argparse.Namespace, config: WalConfig) -> None:
    """Connect to the store and execute one command."""
    store = create_object_store(config)
    wal = ObjectStoreWal(store, list_prefix=config.wal.list_prefix)
    try:
        if isinstance(store, S3ObjectStore):
            await store.connect()

        if args.command == "demo":
            await run_demo(wal, args.count)
        elif args.command == "append":
            ulid = await wal.append(args.data.encode("utf-8"))
            print(ulid)
        elif args.command == "read":
            print(_format_record(await wal.read(args.ulid)))
        elif args.command == "last":
            record = await wal.last_record()
            print(_format_record(record) if record else "Log is empty")
    finally:
        if isinstance(store, S3ObjectStore):
            await store.close()


def build_config(args: argparse.Namespace) -> WalConfig:
    """Environment configuration with command line overrides applied."""
    config = WalConfig.from_env()

    s3_overrides = {
        name: value
        for name, value in (
            ("endpoint_url", args.endpoint),
            ("bucket", args.bucket),
            ("region", args.region),
        )
        if value is not None
    }
    if args.create_bucket:
        s3_overrides["create_bucket"] = True

    config = dataclasses.replace(
        config,
        s3=dataclasses.replace(config.s3, **s3_overrides),
        observability=ObservabilityConfig(
            log_level="DEBUG" if args.verbose else config.observability.log_level,
            log_format=config.observability.log_format,
        ),
    )
    if args.backend is not None:
        config = dataclasses.replace(config, backend=StoreBackend(args.backend))

    config.validate()
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3wal",
        description="Write-ahead log on an S3-compatible object store",
    )
    parser.add_argument("--endpoint", help="S3 endpoint URL (for MinIO)")
    parser.add_argument("--bucket", help="S3 bucket name")
    parser.add_argument("--region", help="AWS region")
    parser.add_argument(
        "--backend",
        choices=[b.value for b in StoreBackend],
        help="Object store backend",
    )
    parser.add_argument(
        "--create-bucket", action="store_true", help="Create the bucket if missing"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    commands = parser.add_subparsers(dest="command", required=True)

    demo = commands.add_parser("demo", help="Append, read back and recover sample records")
    demo.add_argument("--count", type=int, default=1, help="Number of records to append")

    append = commands.add_parser("append", help="Append a UTF-8 payload")
    append.add_argument("data", help="Payload text")

    read = commands.add_parser("read", help="Read a record by ULID")
    read.add_argument("ulid", help="Record ULID")

    commands.add_parser("last", help="Recover the last record")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    setup_logging(config.observability)
    config.log_config()

    try:
        asyncio.run(run_command(args, config))
    except WalError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
