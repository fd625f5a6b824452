"""
Amazon S3 integration service for file storage management.

A general-purpose async wrapper around aioboto3: bucket management, folders
simulated with "/"-delimited key prefixes, object listing, upload, download
and delete. AwsStorageProvider uses part of it; the rest is available to
callers that need to work with the bucket directly.
"""
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aioboto3
import aiofiles
import aiofiles.os
from aiobotocore.response import StreamingBody
from botocore.exceptions import BotoCoreError, ClientError

from filevault.config import Settings
from filevault.logging_config import setup_logging
from filevault.storage.exceptions import StorageError, StorageItemNotFoundError
from filevault.storage.validators import validate_address_segment

logger = setup_logging()

S3_OBJECT_DELIMITER = "/"
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64KB

# Error codes S3 (and S3-compatible servers) use for a missing key
NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")

S3_ERRORS = (ClientError, BotoCoreError)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class AwsS3Service:
    """
    S3 storage service.

    Supports AWS S3 and S3-compatible servers such as MinIO (via
    endpoint_url). A client is opened per call, so the service holds no
    connection state between operations.
    """

    def __init__(
        self,
        bucket_name: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
    ):
        """
        Initialize S3 service.

        Args:
            bucket_name: Bucket the service is configured for
            region: AWS region
            endpoint_url: Custom endpoint URL (None for AWS S3)
            aws_access_key_id: AWS access key (optional, uses env/IAM if not set)
            aws_secret_access_key: AWS secret key (optional, uses env/IAM if not set)
        """
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url
        self.aws_access_key_id = aws_access_key_id
        self.aws_secret_access_key = aws_secret_access_key
        self._session = aioboto3.Session()

    @classmethod
    def from_settings(cls, config: Settings) -> "AwsS3Service":
        return cls(
            bucket_name=config.AWS_S3_BUCKET,
            region=config.AWS_REGION,
            endpoint_url=config.AWS_S3_ENDPOINT_URL,
            aws_access_key_id=config.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
        )

    async def initialize(self) -> None:
        """
        Make sure the configured bucket exists, creating it if needed.

        Raises:
            StorageError: If no bucket is configured or S3 is unreachable
        """
        logger.debug("Creating AWS S3 client")

        if not self.bucket_name or not self.bucket_name.strip():
            raise StorageError("S3 configuration bucket cannot be empty")

        buckets = await self.list_buckets()
        if self.bucket_name not in buckets:
            await self.create_bucket(self.bucket_name, self.region)

        logger.info("AWS S3 service initialized")

    @staticmethod
    def build_object_key(*parts: str | None) -> str:
        """
        Join key parts with the delimiter, skipping blank ones.

        Example: build_object_key("AVATAR", None, "a.png") -> "AVATAR/a.png"
        """
        return S3_OBJECT_DELIMITER.join(part for part in parts if part and part.strip())

    # Buckets

    async def create_bucket(self, bucket_name: str, region: str | None = None) -> None:
        """
        Create a new bucket, in the given region when one is set.

        us-east-1 is the default location and must not be sent as a
        location constraint.
        """
        params = {"Bucket": bucket_name}
        if region and region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}

        try:
            async with self._client() as s3:
                await s3.create_bucket(**params)
        except S3_ERRORS as e:
            raise StorageError(str(e)) from e

        logger.info(f"S3 bucket created: {bucket_name}")

    async def list_buckets(self) -> list[str]:
        try:
            async with self._client() as s3:
                response = await s3.list_buckets()
        except S3_ERRORS as e:
            raise StorageError(str(e)) from e

        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    # Folders

    async def list_folders(self, bucket_name: str) -> list[str]:
        """Get names of the root folders in a bucket."""
        _, prefixes = await self._list(bucket_name, delimiter=S3_OBJECT_DELIMITER)
        return [
            prefix[:-1] for prefix in prefixes
            if prefix.endswith(S3_OBJECT_DELIMITER)
        ]

    async def list_sub_folders(self, bucket_name: str, folder_name: str) -> list[str]:
        """Get names of the first-level folders inside a root folder."""
        prefix = folder_name + S3_OBJECT_DELIMITER
        _, prefixes = await self._list(
            bucket_name, prefix=prefix, delimiter=S3_OBJECT_DELIMITER
        )
        return [
            common[len(prefix):-1] for common in prefixes
            if common.endswith(S3_OBJECT_DELIMITER)
        ]

    async def create_folder(self, bucket_name: str, folder_name: str) -> None:
        await self._create_folder_by_key(bucket_name, folder_name + S3_OBJECT_DELIMITER)

    async def create_sub_folder(
        self, bucket_name: str, folder_name: str, sub_folder: str
    ) -> None:
        folder_key = self.build_object_key(folder_name, sub_folder) + S3_OBJECT_DELIMITER
        await self._create_folder_by_key(bucket_name, folder_key)

    # Listing

    async def list_objects(
        self,
        bucket_name: str,
        folder_name: str,
        sub_folder: str | None = None,
    ) -> list[str]:
        """
        Get object names in a folder, or in a sub-folder of it.

        Folder markers are excluded.
        """
        prefix = self.build_object_key(folder_name, sub_folder) + S3_OBJECT_DELIMITER
        return await self.list_objects_with_prefix(bucket_name, prefix)

    async def list_objects_with_prefix(self, bucket_name: str, prefix: str) -> list[str]:
        """
        Get names (relative to prefix) of the objects directly under a prefix.

        Keys ending in the delimiter are folder markers and are left out.
        """
        keys, _ = await self._list(
            bucket_name, prefix=prefix, delimiter=S3_OBJECT_DELIMITER
        )
        return [
            key[len(prefix):] for key in keys
            if not key.endswith(S3_OBJECT_DELIMITER)
        ]

    async def list_all(self, bucket_name: str) -> list[str]:
        """Get the keys of every object in a bucket."""
        keys, _ = await self._list(bucket_name)
        return keys

    # Objects

    async def exists(self, bucket_name: str, object_key: str) -> bool:
        """
        Check if an object exists.

        Returns:
            True if the object exists, False if S3 reports it missing

        Raises:
            StorageError: For any other S3 failure
        """
        try:
            async with self._client() as s3:
                await s3.head_object(Bucket=bucket_name, Key=object_key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return False
            raise StorageError(f"Key: {object_key}, Error: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Key: {object_key}, Error: {e}") from e

        return True

    async def get_object_size(self, bucket_name: str, object_key: str) -> int:
        """
        Get the content length of an object.

        Raises:
            StorageItemNotFoundError: If the object doesn't exist
            StorageError: For any other S3 failure
        """
        try:
            async with self._client() as s3:
                response = await s3.head_object(Bucket=bucket_name, Key=object_key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                raise StorageItemNotFoundError(object_key) from e
            raise StorageError(f"Key: {object_key}, Error: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Key: {object_key}, Error: {e}") from e

        return response["ContentLength"]

    async def upload_object(self, bucket_name: str, object_key: str, content: bytes) -> None:
        """Upload bytes as an object, replacing any object with the same key."""
        try:
            async with self._client() as s3:
                response = await s3.put_object(
                    Bucket=bucket_name, Key=object_key, Body=content
                )
        except S3_ERRORS as e:
            raise StorageError(f"Key: {object_key}, Error: {e}") from e

        logger.debug(f"Object [key: {object_key}] uploaded. [ETag: {response.get('ETag')}]")

    async def upload_file(
        self, bucket_name: str, folder_name: str | None, file_path: str | Path
    ) -> None:
        """Upload a local file into a folder, keeping its file name."""
        file_path = Path(file_path)
        object_key = self.build_object_key(folder_name, file_path.name)

        try:
            async with aiofiles.open(file_path, "rb") as f:
                content = await f.read()
        except OSError as e:
            raise StorageError(f"Key: {object_key}, Error: {e}") from e

        await self.upload_object(bucket_name, object_key, content)
        logger.debug(f"File {file_path.resolve()} uploaded as {object_key}")

    @asynccontextmanager
    async def open_object_stream(
        self, bucket_name: str, object_key: str
    ) -> AsyncIterator[StreamingBody]:
        """
        Yield the streaming body of an object.

        The body is only readable inside the block; the client is released
        when the block exits.

        Raises:
            StorageError: If the object is missing or cannot be fetched
        """
        async with self._client() as s3:
            try:
                response = await s3.get_object(Bucket=bucket_name, Key=object_key)
            except S3_ERRORS as e:
                raise StorageError(f"Key: {object_key}, Error: {e}") from e

            yield response["Body"]

    async def get_object_content(self, bucket_name: str, object_key: str) -> bytes:
        """Get the full content of an object as bytes."""
        try:
            async with self.open_object_stream(bucket_name, object_key) as body:
                content = await body.read()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Key: {object_key}, Error: {e}") from e

        logger.debug(f"S3 object [key: {object_key}] content retrieved (length: {len(content)})")
        return content

    async def get_object_as_file(
        self,
        bucket_name: str,
        folder_name: str | None,
        file_name: str,
        target_dir: str | Path | None = None,
    ) -> Path:
        """
        Download an object into a local file named after it.

        The file is written to target_dir (the system temp directory by
        default); a stale file with the same name is replaced.

        Returns:
            Path of the downloaded file

        Raises:
            StorageError: If the object cannot be fetched or written
        """
        validate_address_segment("file_name", file_name)
        object_key = self.build_object_key(folder_name, file_name)
        target_path = Path(target_dir or tempfile.gettempdir()) / file_name

        try:
            if await aiofiles.os.path.exists(target_path):
                await aiofiles.os.remove(target_path)

            async with self.open_object_stream(bucket_name, object_key) as body:
                async with aiofiles.open(target_path, "xb") as out:
                    while True:
                        chunk = await body.read(DOWNLOAD_CHUNK_SIZE)
                        if not chunk:
                            break
                        await out.write(chunk)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Key: {object_key}, Error: {e}") from e

        return target_path

    async def copy_object(self, bucket_name: str, source_key: str, target_key: str) -> None:
        try:
            async with self._client() as s3:
                await s3.copy_object(
                    Bucket=bucket_name,
                    Key=target_key,
                    CopySource={"Bucket": bucket_name, "Key": source_key},
                )
        except S3_ERRORS as e:
            raise StorageError(f"Key: {source_key}, Error: {e}") from e

        logger.debug(f"Object [key: {source_key}] copied to {target_key}")

    async def delete_object(self, bucket_name: str, object_key: str) -> None:
        """
        Delete an object by its key.

        A key ending in the delimiter is a folder marker; it is only deleted
        when nothing is stored below it. Deleting a missing key succeeds.

        Raises:
            StorageError: If the folder is not empty or the delete fails
        """
        if object_key.endswith(S3_OBJECT_DELIMITER):
            directory_name = object_key.rstrip(S3_OBJECT_DELIMITER).split(S3_OBJECT_DELIMITER)[-1]
            keys, _ = await self._list(bucket_name, prefix=object_key)
            if any(key != object_key for key in keys):
                raise StorageError(
                    f"Key: {object_key}, Error: Directory is not blank: {directory_name}"
                )

        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=bucket_name, Key=object_key)
        except S3_ERRORS as e:
            raise StorageError(f"Key: {object_key}, Error: {e}") from e

        logger.debug(f"Object [key: {object_key}] deleted")

    # Helpers

    def _get_client_kwargs(self) -> dict:
        """Build kwargs for S3 client."""
        kwargs = {
            "region_name": self.region,
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.aws_access_key_id and self.aws_secret_access_key:
            kwargs["aws_access_key_id"] = self.aws_access_key_id
            kwargs["aws_secret_access_key"] = self.aws_secret_access_key
        return kwargs

    def _client(self):
        return self._session.client("s3", **self._get_client_kwargs())

    async def _list(
        self,
        bucket_name: str,
        prefix: str | None = None,
        delimiter: str | None = None,
    ) -> tuple[list[str], list[str]]:
        """
        List a bucket page by page.

        Returns:
            Tuple of (object keys, common prefixes)
        """
        params = {"Bucket": bucket_name}
        if prefix:
            params["Prefix"] = prefix
        if delimiter:
            params["Delimiter"] = delimiter

        keys = []
        prefixes = []
        try:
            async with self._client() as s3:
                paginator = s3.get_paginator("list_objects_v2")
                async for page in paginator.paginate(**params):
                    keys.extend(item["Key"] for item in page.get("Contents", []))
                    prefixes.extend(item["Prefix"] for item in page.get("CommonPrefixes", []))
        except S3_ERRORS as e:
            raise StorageError(str(e)) from e

        return keys, prefixes

    async def _create_folder_by_key(self, bucket_name: str, folder_key: str) -> None:
        # A folder is a zero-byte object whose key ends in the delimiter
        try:
            async with self._client() as s3:
                await s3.put_object(Bucket=bucket_name, Key=folder_key, Body=b"")
        except S3_ERRORS as e:
            raise StorageError(str(e)) from e
