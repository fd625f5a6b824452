from filevault.storage.exceptions import InvalidStorageAddressError
from filevault.storage.types import StorageType

# Characters that would let a segment escape its directory or key prefix
FORBIDDEN_CHARS = ("/", "\\", "\x00")


def _segment_errors(name: str, value: object) -> list[str]:
    if not isinstance(value, str) or not value.strip():
        return [f"{name} must be a non-empty string"]

    errors = []

    if value in (".", ".."):
        errors.append(f"{name} must not be '.' or '..'")

    for char in FORBIDDEN_CHARS:
        if char in value:
            errors.append(f"{name} must not contain {char!r}")

    return errors


def validate_address_segment(name: str, value: object) -> None:
    """
    Validate a single segment of a logical storage address.

    Rules:
    - Must be a non-empty string, not only whitespace
    - Must not be "." or ".."
    - Must not contain "/", "\\" or NUL

    Raises:
        InvalidStorageAddressError: When the segment breaks any rule
    """
    errors = _segment_errors(name, value)
    if errors:
        raise InvalidStorageAddressError(errors)


def validate_storage_address(item_id: object, folder_id: object = None) -> None:
    """
    Validate the id and optional folder id of a logical storage address.

    All violations are collected and reported together.

    Raises:
        InvalidStorageAddressError: When any segment breaks a rule
    """
    errors = _segment_errors("id", item_id)

    if folder_id is not None:
        errors.extend(_segment_errors("folder_id", folder_id))

    if errors:
        raise InvalidStorageAddressError(errors)


def storage_type_segment(storage_type: object) -> str:
    """
    Return the path or key segment for a storage type (its member name).

    Raises:
        InvalidStorageAddressError: When the value is not a known storage type
    """
    try:
        return StorageType(storage_type).name
    except (ValueError, TypeError) as e:
        raise InvalidStorageAddressError([f"unknown storage type {storage_type!r}"]) from e
