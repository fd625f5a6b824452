"""
Local filesystem storage provider.

This module maps logical storage addresses onto files below a base
directory and performs all file I/O asynchronously through aiofiles.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiofiles
import aiofiles.os
from aiofiles.threadpool.binary import AsyncBufferedIOBase, AsyncBufferedReader

from filevault.logging_config import setup_logging
from filevault.storage.base import StorageProvider
from filevault.storage.exceptions import (
    StorageError,
    StorageItemAlreadyExistsError,
    StorageItemNotFoundError,
)
from filevault.storage.types import StorageProviderType, StorageType
from filevault.storage.validators import storage_type_segment, validate_storage_address

logger = setup_logging()

COPY_CHUNK_SIZE = 64 * 1024  # 64KB


class FileSystemStorageProvider(StorageProvider):
    """
    Local filesystem storage with async operations.

    Directory structure:
    <base_path>/<folder_id>/<TYPE>/<item_id>   (folder given)
    <base_path>/<TYPE>/<item_id>               (no folder)

    The folder segment comes before the type segment here, while the S3
    provider puts the type first.
    """

    def __init__(self, base_path: str | Path):
        """
        Initialize filesystem storage provider.

        Args:
            base_path: Base directory every address is resolved under
        """
        self.base_path = Path(base_path)

    @property
    def provider_type(self) -> StorageProviderType:
        return StorageProviderType.FS

    @property
    def supports_output_stream(self) -> bool:
        return True

    async def upload(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None,
        content: bytes,
    ) -> None:
        """
        Write content to a new file.

        Goes through create(), so an existing item is never overwritten.
        If the write fails, the partially written file is removed.

        Raises:
            StorageItemAlreadyExistsError: If the file already exists
            StorageError: If the write fails
        """
        file_path = self._get_file_path(storage_type, item_id, folder_id)

        try:
            async with self.create(storage_type, item_id, folder_id) as out:
                await out.write(content)
        except StorageError:
            raise
        except Exception as e:
            await self._remove_partial_file(file_path)
            raise StorageError(f"Failed to upload {file_path}: {e}") from e

        logger.debug(f"Uploaded {len(content)} bytes to {file_path}")

    @asynccontextmanager
    async def create(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> AsyncIterator[AsyncBufferedIOBase]:
        """
        Create a new file and yield it for writing.

        Missing parent directories are created. The file is opened in
        exclusive-create mode, so when two callers race on the same address
        exactly one of them gets the file.

        Raises:
            StorageItemAlreadyExistsError: If the file already exists
            StorageError: If the file cannot be created
        """
        file_path = self._get_file_path(storage_type, item_id, folder_id)

        if await aiofiles.os.path.exists(file_path):
            raise StorageItemAlreadyExistsError(str(file_path))

        try:
            await aiofiles.os.makedirs(file_path.parent, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create directory {file_path.parent}: {e}") from e

        try:
            out = await aiofiles.open(file_path, "xb")
        except FileExistsError as e:
            raise StorageItemAlreadyExistsError(str(file_path)) from e
        except OSError as e:
            raise StorageError(f"Failed to create {file_path}: {e}") from e

        try:
            yield out
        finally:
            await out.close()

    @asynccontextmanager
    async def read(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> AsyncIterator[AsyncBufferedReader]:
        """
        Open an existing file and yield it for reading.

        Raises:
            StorageError: If the file is missing or cannot be opened
        """
        file_path = self._get_file_path(storage_type, item_id, folder_id)

        try:
            source = await aiofiles.open(file_path, "rb")
        except OSError as e:
            raise StorageError(f"Failed to read {file_path}: {e}") from e

        try:
            yield source
        finally:
            await source.close()

    async def delete(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> None:
        """
        Delete a file from storage.

        Raises:
            StorageItemNotFoundError: If the file doesn't exist
            StorageError: If the delete fails
        """
        file_path = self._get_file_path(storage_type, item_id, folder_id)

        if not await aiofiles.os.path.exists(file_path):
            raise StorageItemNotFoundError(str(file_path))

        try:
            await aiofiles.os.remove(file_path)
        except OSError as e:
            raise StorageError(f"Failed to delete {file_path}: {e}") from e

        logger.debug(f"Deleted {file_path}")

    async def move(
        self,
        from_type: StorageType,
        from_id: str,
        to_type: StorageType,
        to_id: str,
        folder_id: str | None = None,
    ) -> None:
        """
        Rename a file to another type/id within the same folder.

        Raises:
            StorageItemNotFoundError: If the source doesn't exist
            StorageItemAlreadyExistsError: If the target already exists
            StorageError: If the rename fails
        """
        source_path = self._get_file_path(from_type, from_id, folder_id)
        target_path = self._get_file_path(to_type, to_id, folder_id)
        await self._check_transfer(source_path, target_path)

        try:
            await aiofiles.os.makedirs(target_path.parent, exist_ok=True)
            await aiofiles.os.rename(source_path, target_path)
        except OSError as e:
            raise StorageError(f"Failed to move {source_path} to {target_path}: {e}") from e

        logger.debug(f"Moved {source_path} to {target_path}")

    async def copy(
        self,
        from_type: StorageType,
        from_id: str,
        to_type: StorageType,
        to_id: str,
        folder_id: str | None = None,
    ) -> None:
        """
        Copy a file to another type/id within the same folder.

        The source is streamed into the new file in 64KB chunks. A target
        left incomplete by a failed copy is removed.

        Raises:
            StorageItemNotFoundError: If the source doesn't exist
            StorageItemAlreadyExistsError: If the target already exists
            StorageError: If the copy fails
        """
        source_path = self._get_file_path(from_type, from_id, folder_id)
        target_path = self._get_file_path(to_type, to_id, folder_id)
        await self._check_transfer(source_path, target_path)

        try:
            async with self.create(to_type, to_id, folder_id) as out:
                async with aiofiles.open(source_path, "rb") as src:
                    while True:
                        chunk = await src.read(COPY_CHUNK_SIZE)
                        if not chunk:
                            break
                        await out.write(chunk)
        except StorageError:
            raise
        except Exception as e:
            await self._remove_partial_file(target_path)
            raise StorageError(f"Failed to copy {source_path} to {target_path}: {e}") from e

        logger.debug(f"Copied {source_path} to {target_path}")

    async def exist(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> bool:
        """
        Check if a file exists in storage.

        Never raises: an address that cannot be resolved counts as missing.

        Returns:
            True if file exists, False otherwise
        """
        try:
            file_path = self._get_file_path(storage_type, item_id, folder_id)
            return await aiofiles.os.path.exists(file_path)
        except (StorageError, OSError) as e:
            logger.warning(f"Existence check failed for {storage_type}/{item_id}: {e}")
            return False

    async def get_size(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> int:
        """
        Get the size of a file in bytes.

        Raises:
            StorageItemNotFoundError: If the file doesn't exist
            StorageError: If the size cannot be read
        """
        file_path = self._get_file_path(storage_type, item_id, folder_id)

        if not await aiofiles.os.path.exists(file_path):
            raise StorageItemNotFoundError(str(file_path))

        try:
            return await aiofiles.os.path.getsize(file_path)
        except OSError as e:
            raise StorageError(f"Failed to get size of {file_path}: {e}") from e

    def _get_file_path(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None,
    ) -> Path:
        """
        Calculate the file path for a logical address.

        Structure: <base_path>/[<folder_id>/]<TYPE>/<item_id>
        Example: storage/data/team-7/AVATAR/user-42.png

        Raises:
            InvalidStorageAddressError: If the type is unknown or the id or
                folder id is unsafe
        """
        validate_storage_address(item_id, folder_id)
        type_segment = storage_type_segment(storage_type)

        if folder_id is not None:
            return self.base_path / folder_id / type_segment / item_id
        return self.base_path / type_segment / item_id

    async def _check_transfer(self, source_path: Path, target_path: Path) -> None:
        if not await aiofiles.os.path.exists(source_path):
            raise StorageItemNotFoundError(str(source_path))
        if await aiofiles.os.path.exists(target_path):
            raise StorageItemAlreadyExistsError(str(target_path))

    async def _remove_partial_file(self, file_path: Path) -> None:
        try:
            if await aiofiles.os.path.exists(file_path):
                await aiofiles.os.remove(file_path)
        except OSError as e:
            logger.warning(f"Failed to remove partial file {file_path}: {e}")
