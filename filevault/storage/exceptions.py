"""
Storage-specific exceptions.

Every failure raised by a provider is a StorageError. Each error carries a
``kind`` so callers can branch on what went wrong without matching on the
class hierarchy, and the underlying backend error stays reachable through
``cause`` (it is chained with ``raise ... from``).
"""
from enum import Enum


class StorageErrorKind(str, Enum):
    """Discriminant carried by every StorageError."""

    BACKEND_FAILURE = "backend_failure"
    ADDRESS_CONFLICT = "address_conflict"
    UNSUPPORTED = "unsupported"
    INVALID_ADDRESS = "invalid_address"


class StorageError(Exception):
    """Base exception for storage operations."""

    kind = StorageErrorKind.BACKEND_FAILURE

    def __init__(self, message: str = "Storage operation failed"):
        self.message = message
        super().__init__(message)

    @property
    def cause(self) -> BaseException | None:
        """Backend exception this error wraps, if any."""
        return self.__cause__


class StorageAddressConflictError(StorageError):
    """Raised when the existence state of an address contradicts the operation."""

    kind = StorageErrorKind.ADDRESS_CONFLICT

    def __init__(self, location: str, message: str):
        self.location = location
        super().__init__(message)


class StorageItemAlreadyExistsError(StorageAddressConflictError):
    """Raised when an item is present where the operation expects none."""

    def __init__(self, location: str):
        super().__init__(location, f"{location} already exists")


class StorageItemNotFoundError(StorageAddressConflictError):
    """Raised when an item is absent where the operation expects one."""

    def __init__(self, location: str):
        super().__init__(location, f"{location} does not exist")


class StorageOperationNotSupportedError(StorageError):
    """Raised when a provider does not offer the requested capability."""

    kind = StorageErrorKind.UNSUPPORTED


class InvalidStorageAddressError(StorageError):
    """Raised when an id or folder id cannot be mapped to a safe location."""

    kind = StorageErrorKind.INVALID_ADDRESS

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__('; '.join(errors))
