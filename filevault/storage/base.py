"""
Abstract base class for storage providers.

This module defines the contract every storage provider implements. Items
are addressed by a logical (storage_type, item_id, folder_id) triple; how
that triple maps to a path or object key is up to each provider.
"""
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any

from filevault.storage.types import StorageProviderType, StorageType


class StorageProvider(ABC):
    """
    Abstract base class for storage providers.

    All storage implementations (local filesystem, S3) implement these
    methods so callers can switch backends through configuration alone.
    """

    @abstractmethod
    async def upload(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None,
        content: bytes,
    ) -> None:
        """
        Write content as the full contents of the addressed item.

        Args:
            storage_type: Content category of the item
            item_id: Identifier of the item
            folder_id: Optional folder the item belongs to
            content: Bytes to store

        Raises:
            StorageItemAlreadyExistsError: If the provider refuses to overwrite
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def create(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> AbstractAsyncContextManager[Any]:
        """
        Open the addressed item for streaming writes.

        Use as ``async with provider.create(...) as sink`` and write with
        ``await sink.write(data)``. The sink is closed when the block exits.

        Raises:
            StorageItemAlreadyExistsError: If an item already exists there
            StorageOperationNotSupportedError: If the backend has no output stream
            StorageError: If the item cannot be opened
        """
        pass

    @abstractmethod
    def read(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> AbstractAsyncContextManager[Any]:
        """
        Open the addressed item for reading from its start.

        Use as ``async with provider.read(...) as source`` and read with
        ``await source.read()``.

        Raises:
            StorageError: If the item is missing or cannot be opened
        """
        pass

    @abstractmethod
    async def delete(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> None:
        """
        Remove the addressed item.

        Raises:
            StorageItemNotFoundError: If the provider requires the item to exist
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def move(
        self,
        from_type: StorageType,
        from_id: str,
        to_type: StorageType,
        to_id: str,
        folder_id: str | None = None,
    ) -> None:
        """
        Move an item to another type/id within the same folder.

        Raises:
            StorageItemNotFoundError: If the source is missing
            StorageItemAlreadyExistsError: If the provider refuses to overwrite
            StorageError: If the move fails
        """
        pass

    @abstractmethod
    async def copy(
        self,
        from_type: StorageType,
        from_id: str,
        to_type: StorageType,
        to_id: str,
        folder_id: str | None = None,
    ) -> None:
        """
        Copy an item to another type/id within the same folder.

        Raises:
            StorageItemNotFoundError: If the source is missing
            StorageItemAlreadyExistsError: If the provider refuses to overwrite
            StorageError: If the copy fails
        """
        pass

    @abstractmethod
    async def exist(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> bool:
        """
        Check if an item is present at the address.

        A missing item is reported as False, never as an error.

        Returns:
            True if the item exists, False otherwise
        """
        pass

    @abstractmethod
    async def get_size(
        self,
        storage_type: StorageType,
        item_id: str,
        folder_id: str | None = None,
    ) -> int:
        """
        Get the size of the addressed item.

        Returns:
            Size in bytes

        Raises:
            StorageItemNotFoundError: If the item is missing
            StorageError: If the size cannot be read
        """
        pass

    @property
    @abstractmethod
    def provider_type(self) -> StorageProviderType:
        """Return which backend this provider is."""
        pass

    @property
    @abstractmethod
    def supports_output_stream(self) -> bool:
        """Return True if create() is usable on this provider."""
        pass
