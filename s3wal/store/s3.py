"""
S3 object store implementation.

This module provides the production ObjectStore backend for AWS S3 and
S3-compatible services (MinIO, LocalStack). It uses aiobotocore for async
operations.

Invariants:
    - put() returns only after S3 acknowledged the PutObject
    - NoSuchKey is reported as ObjectNotFoundError, every other failure as
      StoreError; nothing is retried here beyond botocore's own transport
      retries
    - Listing uses ListObjectsV2 continuation tokens as page tokens

How to change safely:
    - Test against MinIO before deploying to AWS
    - Keep error mapping in _translate_error so all calls agree
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError

from ..config import S3Config
from .base import ListPage, ObjectNotFoundError, StoreError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}
_NO_BUCKET_CODES = {"NoSuchBucket", "404", "NotFound"}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3ObjectStore:
    """S3 implementation of the ObjectStore protocol.

    Attributes:
        config: S3 configuration
        page_size: Maximum keys per ListObjectsV2 page

    Example:
        >>> config = S3Config(bucket="s3wal-dev", endpoint_url="http://127.0.0.1:9000")
        >>> async with S3ObjectStore(config) as store:
        ...     await store.put("01ARZ3NDEKTSV4RRFFQ69G5FAV", b"...")
    """

    def __init__(
        self,
        config: S3Config,
        page_size: int = 1000,
        client: Any = None,
    ) -> None:
        """Initialize the S3 store.

        Args:
            config: S3Config instance
            page_size: Maximum keys per listing page
            client: Already-open S3 client to use instead of creating one
        """
        self.config = config
        self.page_size = page_size
        self._session = None
        self._client_ctx = None
        self._client = client

    @property
    def is_connected(self) -> bool:
        """Whether an S3 client is open."""
        return self._client is not None

    async def connect(self) -> None:
        """Open the S3 client, creating the bucket if configured to.

        Raises:
            StoreError: If the client cannot be created or the bucket
                cannot be provisioned
        """
        if self._client is not None:
            return

        self._session = get_session()

        client_kwargs = {
            "region_name": self.config.region,
        }

        if self.config.endpoint_url:
            client_kwargs["endpoint_url"] = self.config.endpoint_url

        if self.config.access_key_id:
            client_kwargs["aws_access_key_id"] = self.config.access_key_id
            client_kwargs["aws_secret_access_key"] = self.config.secret_access_key

        try:
            client_ctx = self._session.create_client("s3", **client_kwargs)
            self._client = await client_ctx.__aenter__()
            self._client_ctx = client_ctx
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Failed to create S3 client: {e}", operation="connect") from e

        logger.info(
            "Connected to S3",
            extra={
                "bucket": self.config.bucket,
                "region": self.config.region,
                "endpoint": self.config.endpoint_url or "AWS",
            },
        )

        if self.config.create_bucket:
            try:
                await self.ensure_bucket()
            except StoreError:
                await self.close()
                raise

    async def close(self) -> None:
        """Close the S3 client."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client_ctx = None
            logger.info("S3 connection closed")
        self._client = None
        self._session = None

    async def __aenter__(self) -> S3ObjectStore:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def ensure_bucket(self) -> bool:
        """Create the configured bucket if it does not exist.

        Returns:
            True if the bucket was created, False if it already existed
        """
        client = self._require_client()
        bucket = self.config.bucket

        try:
            await client.head_bucket(Bucket=bucket)
            return False
        except ClientError as e:
            if _error_code(e) not in _NO_BUCKET_CODES:
                raise self._translate_error(e, "head_bucket", bucket) from e
        except BotoCoreError as e:
            raise self._translate_error(e, "head_bucket", bucket) from e

        create_kwargs: dict[str, Any] = {"Bucket": bucket}
        if self.config.region != "us-east-1":
            create_kwargs["CreateBucketConfiguration"] = {
                "LocationConstraint": self.config.region
            }

        try:
            await client.create_bucket(**create_kwargs)
        except ClientError as e:
            if _error_code(e) in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                return False
            raise self._translate_error(e, "create_bucket", bucket) from e
        except BotoCoreError as e:
            raise self._translate_error(e, "create_bucket", bucket) from e

        logger.info("Created bucket", extra={"bucket": bucket})
        return True

    async def put(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key`` with PutObject."""
        client = self._require_client()
        try:
            await client.put_object(
                Bucket=self.config.bucket,
                Key=key,
                Body=value,
                ContentType="application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            raise self._translate_error(e, "put", key) from e

        logger.debug("Object stored", extra={"key": key, "size": len(value)})

    async def get(self, key: str) -> bytes:
        """Fetch the value under ``key`` with GetObject."""
        client = self._require_client()
        try:
            response = await client.get_object(Bucket=self.config.bucket, Key=key)
            async with response["Body"] as stream:
                return await stream.read()
        except (BotoCoreError, ClientError) as e:
            raise self._translate_error(e, "get", key) from e

    async def list_keys(
        self,
        prefix: str = "",
        page_token: Optional[str] = None,
    ) -> ListPage:
        """List one page of keys with ListObjectsV2."""
        client = self._require_client()

        request: dict[str, Any] = {
            "Bucket": self.config.bucket,
            "Prefix": prefix,
            "MaxKeys": self.page_size,
        }
        if page_token is not None:
            request["ContinuationToken"] = page_token

        try:
            response = await client.list_objects_v2(**request)
        except (BotoCoreError, ClientError) as e:
            raise self._translate_error(e, "list", prefix) from e

        keys = [obj["Key"] for obj in response.get("Contents", [])]
        next_token = None
        if response.get("IsTruncated"):
            next_token = response.get("NextContinuationToken")
            if not next_token:
                raise StoreError(
                    "Truncated listing without a continuation token",
                    key=prefix,
                    operation="list",
                )

        return ListPage(keys=keys, next_token=next_token)

    def _require_client(self) -> Any:
        if self._client is None:
            raise StoreError("Not connected to S3", operation="connect")
        return self._client

    def _translate_error(self, error: Exception, operation: str, key: str) -> StoreError:
        """Map a botocore exception to the store error taxonomy."""
        if isinstance(error, ClientError):
            code = _error_code(error)
            if operation == "get" and code in _NOT_FOUND_CODES:
                return ObjectNotFoundError(key)
            message = f"S3 {operation} failed ({code or 'unknown'}): {error}"
        else:
            message = f"S3 {operation} failed: {error}"

        logger.warning(
            "S3 request failed",
            extra={"operation": operation, "key": key, "bucket": self.config.bucket},
        )
        return StoreError(message, key=key, operation=operation)
