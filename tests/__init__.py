"""
s3wal Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies)
- integration/: Integration tests (WAL + recovery over the in-memory store)
- e2e/: End-to-end tests against a live S3-compatible endpoint (MinIO)
"""
