"""Command line tools for s3wal."""
