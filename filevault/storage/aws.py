"""
S3 storage provider.

Maps logical storage addresses onto object keys in a single bucket and
delegates every operation to AwsS3Service.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, NoReturn

from aiobotocore.response import StreamingBody

from filevault.logging_config import setup_logging
from filevault.storage.base import StorageProvider
from filevault.storage.exceptions import (
    InvalidStorageAddressError,
    StorageItemNotFoundError,
    StorageOperationNotSupportedError,
)
from filevault.storage.s3 import S3_OBJECT_DELIMITER, AwsS3Service
from filevault.storage.types import StorageProviderType, StorageType
from filevault.storage.validators import storage_type_segment, validate_storage_address

logger = setup_logging()


class AwsStorageProvider(StorageProvider):
    """
    S3 storage provider.

    Key structure: <TYPE>/<folder_id>/<item_id>, or <TYPE>/<item_id> when
    no folder is given. Unlike the filesystem provider, uploads overwrite
    existing objects and deleting a missing object is not an error.
    """

    def __init__(self, s3_service: AwsS3Service, bucket_name: str | None = None):
        """
        Initialize S3 storage provider.

        Args:
            s3_service: Service used for all S3 calls
            bucket_name: Target bucket (defaults to the service's bucket)
        """
        self.s3_service = s3_service
        self.bucket_name = bucket_name or s3_service.bucket_name

    @property
    def provider_type(self) -> StorageProviderType:
        return StorageProviderType.S3

    @property
    def supports_output_stream(self) -> bool:
        return False

    async def upload(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None,
        content: bytes,
    ) -> None:
        object_key = self._get_object_key(storage_type, item_id, folder_id)
        await self.s3_service.upload_object(self.bucket_name, object_key, content)

    def create(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> NoReturn:
        """
        Not available: S3 offers no write-then-close output stream.

        Check supports_output_stream and use upload() instead.

        Raises:
            StorageOperationNotSupportedError: Always
        """
        raise StorageOperationNotSupportedError(
            "S3 does not provide an output stream, use upload() instead"
        )

    @asynccontextmanager
    async def read(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> AsyncIterator[StreamingBody]:
        object_key = self._get_object_key(storage_type, item_id, folder_id)
        async with self.s3_service.open_object_stream(self.bucket_name, object_key) as body:
            yield body

    async def delete(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> None:
        object_key = self._get_object_key(storage_type, item_id, folder_id)
        await self.s3_service.delete_object(self.bucket_name, object_key)

    async def move(
        self,
        from_type: StorageType,
        from_id: str,
        to_type: StorageType,
        to_id: str,
        folder_id: str | None = None,
    ) -> None:
        """
        Move an object: server-side copy, then delete the source.

        Raises:
            StorageItemNotFoundError: If the source doesn't exist
            StorageError: If the copy or delete fails
        """
        source_key, target_key = await self._prepare_transfer(
            from_type, from_id, to_type, to_id, folder_id
        )
        await self.s3_service.copy_object(self.bucket_name, source_key, target_key)
        await self.s3_service.delete_object(self.bucket_name, source_key)
        logger.debug(f"Object [key: {source_key}] moved to {target_key}")

    async def copy(
        self,
        from_type: StorageType,
        from_id: str,
        to_type: StorageType,
        to_id: str,
        folder_id: str | None = None,
    ) -> None:
        """
        Copy an object server-side.

        Raises:
            StorageItemNotFoundError: If the source doesn't exist
            StorageError: If the copy fails
        """
        source_key, target_key = await self._prepare_transfer(
            from_type, from_id, to_type, to_id, folder_id
        )
        await self.s3_service.copy_object(self.bucket_name, source_key, target_key)

    async def exist(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> bool:
        try:
            object_key = self._get_object_key(storage_type, item_id, folder_id)
        except InvalidStorageAddressError as e:
            logger.warning(f"Existence check failed for {storage_type}/{item_id}: {e}")
            return False
        return await self.s3_service.exists(self.bucket_name, object_key)

    async def get_size(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> int:
        object_key = self._get_object_key(storage_type, item_id, folder_id)
        return await self.s3_service.get_object_size(self.bucket_name, object_key)

    def _get_folder(self, storage_type: StorageType, folder_id: str | None) -> str:
        parts = [storage_type_segment(storage_type)]
        if folder_id is not None:
            parts.append(folder_id)
        return S3_OBJECT_DELIMITER.join(parts)

    def _get_object_key(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None,
    ) -> str:
        """
        Calculate the object key for a logical address.

        Example: AVATAR/team-7/user-42.png

        Raises:
            InvalidStorageAddressError: If the type is unknown or the id or
                folder id is unsafe
        """
        validate_storage_address(item_id, folder_id)
        return self._get_folder(storage_type, folder_id) + S3_OBJECT_DELIMITER + item_id

    async def _prepare_transfer(
        self,
        from_type: StorageType,
        from_id: str,
        to_type: StorageType,
        to_id: str,
        folder_id: str | None,
    ) -> tuple[str, str]:
        source_key = self._get_object_key(from_type, from_id, folder_id)
        target_key = self._get_object_key(to_type, to_id, folder_id)

        if not await self.s3_service.exists(self.bucket_name, source_key):
            raise StorageItemNotFoundError(source_key)

        return source_key, target_key
