"""
Storage provider selection.

This module builds the storage provider named by configuration, so callers
can switch between the local filesystem and S3 by changing the
STORAGE_PROVIDER environment variable.
"""
from filevault.config import Settings, settings
from filevault.logging_config import setup_logging
from filevault.storage.aws import AwsStorageProvider
from filevault.storage.base import StorageProvider
from filevault.storage.fs import FileSystemStorageProvider
from filevault.storage.s3 import AwsS3Service
from filevault.storage.types import StorageProviderType

logger = setup_logging()


async def get_storage_provider(config: Settings | None = None) -> StorageProvider:
    """
    Return storage provider based on configuration.

    Unknown STORAGE_PROVIDER values fall back to the filesystem provider.
    For S3 the configured bucket is checked (and created if missing) before
    the provider is returned.

    Args:
        config: Settings to use (defaults to the module-level settings)

    Returns:
        StorageProvider instance (filesystem or S3)

    Raises:
        StorageError: If the S3 bucket is not configured or cannot be prepared
    """
    config = config or settings
    provider_type = StorageProviderType.from_value(config.STORAGE_PROVIDER)

    if provider_type == StorageProviderType.S3:
        s3_service = AwsS3Service.from_settings(config)
        await s3_service.initialize()
        logger.info(f"Using S3 storage provider (bucket: {s3_service.bucket_name})")
        return AwsStorageProvider(s3_service)

    logger.info(f"Using filesystem storage provider (base path: {config.STORAGE_BASE_PATH})")
    return FileSystemStorageProvider(base_path=config.STORAGE_BASE_PATH)
