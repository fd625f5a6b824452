"""
Storage abstraction layer for file operations.

This package provides one interface for storing items addressed by
(type, id, folder_id), backed either by the local filesystem or by S3.
"""

from filevault.storage.aws import AwsStorageProvider
from filevault.storage.base import StorageProvider
from filevault.storage.exceptions import (
    InvalidStorageAddressError,
    StorageAddressConflictError,
    StorageError,
    StorageErrorKind,
    StorageItemAlreadyExistsError,
    StorageItemNotFoundError,
    StorageOperationNotSupportedError,
)
from filevault.storage.factory import get_storage_provider
from filevault.storage.fs import FileSystemStorageProvider
from filevault.storage.s3 import AwsS3Service
from filevault.storage.types import StorageProviderType, StorageType

__all__ = [
    "StorageProvider",
    "FileSystemStorageProvider",
    "AwsStorageProvider",
    "AwsS3Service",
    "get_storage_provider",
    "StorageType",
    "StorageProviderType",
    "StorageError",
    "StorageErrorKind",
    "StorageAddressConflictError",
    "StorageItemAlreadyExistsError",
    "StorageItemNotFoundError",
    "StorageOperationNotSupportedError",
    "InvalidStorageAddressError",
]
