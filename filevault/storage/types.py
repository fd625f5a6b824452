"""
Enumerations used to address stored items and to pick a backend.
"""
from enum import Enum


class StorageType(str, Enum):
    """
    Content category of a stored item.

    Used only as a namespace segment in paths and object keys. The segment
    is the member name, so ``StorageType.AVATAR`` lands under ``AVATAR/``.
    """

    AVATAR = "avatar"
    DOCUMENT = "document"
    IMAGE = "image"
    ATTACHMENT = "attachment"
    EXPORT = "export"


class StorageProviderType(str, Enum):
    """Backend kind behind a StorageProvider."""

    S3 = "S3"
    FS = "FS"

    @classmethod
    def from_value(cls, value: str | None) -> "StorageProviderType":
        """
        Resolve a configuration string to a provider type.

        "S3"/"s3" select S3, "FS"/"fs" select the filesystem. Unknown or
        empty values fall back to the default instead of raising.

        Args:
            value: Raw configuration value

        Returns:
            Matching provider type, or the default
        """
        if value:
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.default()

    @classmethod
    def default(cls) -> "StorageProviderType":
        return cls.FS
