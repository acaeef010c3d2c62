"""
Unit tests for the s3wal command line tool.

Commands run against the in-memory backend, so each invocation starts with
an empty log.
"""

import pytest

from s3wal.config import StoreBackend
from s3wal.errors import StoreError
from s3wal.store import InMemoryObjectStore, S3ObjectStore
from s3wal.tools import cli
from s3wal.wal import ObjectStoreWal


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch):
    """Keep the CLI from reconfiguring the root logger during tests."""
    monkeypatch.setattr(cli, "setup_logging", lambda config: None)
    monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)
    monkeypatch.delenv("AWS_SECRET_ACCESS_KEY", raising=False)
    monkeypatch.delenv("WAL_LIST_PAGE_SIZE", raising=False)
    monkeypatch.delenv("LOG_FORMAT", raising=False)


class TestCli:
    """Tests for argument handling and commands."""

    def test_demo(self, capsys):
        cli.main(["--backend", "memory", "demo", "--count", "2"])

        out = capsys.readouterr().out
        assert out.count("Record appended with ULID:") == 2
        assert "Read record: b'Hello, MinIO!'" in out
        assert "Checksum is valid!" in out
        assert "Last record:" in out
        assert "Second record" in out

    def test_append_prints_ulid(self, capsys):
        cli.main(["--backend", "memory", "append", "hello"])

        out = capsys.readouterr().out.strip()
        assert len(out) == 26

    def test_last_on_empty_log(self, capsys):
        cli.main(["--backend", "memory", "last"])
        assert "Log is empty" in capsys.readouterr().out

    def test_read_missing_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--backend", "memory", "read", "01ARZ3NDEKTSV4RRFFQ69G5FAV"])

        assert exc_info.value.code == 1
        assert "RECORD_NOT_FOUND" in capsys.readouterr().err

    def test_connect_failure_still_closes(self, monkeypatch, capsys):
        closed = []

        async def failing_connect(store):
            raise StoreError("Access Denied", operation="head_bucket")

        async def record_close(store):
            closed.append(store)

        monkeypatch.setattr(S3ObjectStore, "connect", failing_connect)
        monkeypatch.setattr(S3ObjectStore, "close", record_close)

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--backend", "s3", "--bucket", "b", "last"])

        assert exc_info.value.code == 1
        assert len(closed) == 1
        assert "STORE_ERROR" in capsys.readouterr().err

    def test_requires_command(self):
        with pytest.raises(SystemExit):
            cli.main(["--backend", "memory"])

    def test_build_config_overrides(self, monkeypatch):
        monkeypatch.setenv("S3_BUCKET", "from-env")
        args = cli.build_parser().parse_args(
            [
                "--endpoint",
                "http://127.0.0.1:9000",
                "--bucket",
                "gulog-dev",
                "--create-bucket",
                "-v",
                "last",
            ]
        )

        config = cli.build_config(args)

        assert config.backend == StoreBackend.S3
        assert config.s3.bucket == "gulog-dev"
        assert config.s3.endpoint_url == "http://127.0.0.1:9000"
        assert config.s3.create_bucket is True
        assert config.observability.log_level == "DEBUG"

    def test_build_config_keeps_env(self, monkeypatch):
        monkeypatch.setenv("S3_BUCKET", "from-env")
        args = cli.build_parser().parse_args(["last"])

        assert cli.build_config(args).s3.bucket == "from-env"

    @pytest.mark.asyncio
    async def test_run_demo(self, capsys):
        wal = ObjectStoreWal(InMemoryObjectStore())

        await cli.run_demo(wal, 3)

        out = capsys.readouterr().out
        assert out.count("Checksum is valid!") == 3
        assert "Third record" in out
