"""
Unit tests for FileSystemStorageProvider.
"""
import asyncio

import aiofiles.os
import pytest

from filevault.storage.exceptions import (
    InvalidStorageAddressError,
    StorageAddressConflictError,
    StorageError,
    StorageErrorKind,
    StorageItemAlreadyExistsError,
    StorageItemNotFoundError,
)
from filevault.storage.fs import FileSystemStorageProvider
from filevault.storage.types import StorageProviderType, StorageType


def test_provider_describes_itself(fs_provider):
    """Test the filesystem provider reports FS and supports output streams."""
    assert fs_provider.provider_type == StorageProviderType.FS
    assert fs_provider.supports_output_stream is True


@pytest.mark.asyncio
async def test_upload_places_folder_before_type(fs_provider, tmp_path):
    """Test that the folder segment comes before the type segment on disk."""
    await fs_provider.upload(StorageType.AVATAR, "user-1.png", "team-7", b"avatar")

    assert (tmp_path / "team-7" / "AVATAR" / "user-1.png").read_bytes() == b"avatar"


@pytest.mark.asyncio
async def test_upload_without_folder(fs_provider, tmp_path):
    """Test that items without a folder live directly under the type."""
    await fs_provider.upload(StorageType.DOCUMENT, "terms.pdf", None, b"terms")

    assert (tmp_path / "DOCUMENT" / "terms.pdf").read_bytes() == b"terms"


@pytest.mark.asyncio
async def test_create_then_read_returns_written_bytes(fs_provider):
    """Test streaming writes through create() can be read back exactly."""
    async with fs_provider.create(StorageType.DOCUMENT, "report.txt", "team-1") as out:
        await out.write(b"hello ")
        await out.write(b"world")

    async with fs_provider.read(StorageType.DOCUMENT, "report.txt", "team-1") as source:
        content = await source.read()

    assert content == b"hello world"


@pytest.mark.asyncio
async def test_upload_then_read_returns_content(fs_provider):
    """Test upload() followed by read() returns the uploaded bytes."""
    payload = bytes(range(256)) * 10
    await fs_provider.upload(StorageType.IMAGE, "logo.bin", "team-1", payload)

    async with fs_provider.read(StorageType.IMAGE, "logo.bin", "team-1") as source:
        assert await source.read() == payload


@pytest.mark.asyncio
async def test_create_existing_item_raises_already_exists(fs_provider, tmp_path):
    """Test create() refuses an address that already holds an item."""
    await fs_provider.upload(StorageType.AVATAR, "user-1.png", None, b"original")

    with pytest.raises(StorageItemAlreadyExistsError) as exc_info:
        async with fs_provider.create(StorageType.AVATAR, "user-1.png") as out:
            await out.write(b"replacement")

    assert exc_info.value.kind == StorageErrorKind.ADDRESS_CONFLICT
    assert (tmp_path / "AVATAR" / "user-1.png").read_bytes() == b"original"


@pytest.mark.asyncio
async def test_upload_existing_item_raises_already_exists(fs_provider, tmp_path):
    """Test upload() never overwrites on the filesystem."""
    await fs_provider.upload(StorageType.AVATAR, "user-1.png", "team-7", b"original")

    with pytest.raises(StorageItemAlreadyExistsError):
        await fs_provider.upload(StorageType.AVATAR, "user-1.png", "team-7", b"replacement")

    assert (tmp_path / "team-7" / "AVATAR" / "user-1.png").read_bytes() == b"original"


@pytest.mark.asyncio
async def test_concurrent_create_lets_exactly_one_caller_win(fs_provider, tmp_path):
    """Test two creators racing on a fresh address: one succeeds, one conflicts."""

    async def write_item(payload: bytes) -> bytes:
        async with fs_provider.create(StorageType.EXPORT, "race.csv", "team-1") as out:
            await out.write(payload)
        return payload

    results = await asyncio.gather(
        write_item(b"first"), write_item(b"second"), return_exceptions=True
    )

    winners = [r for r in results if isinstance(r, bytes)]
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], StorageItemAlreadyExistsError)
    assert (tmp_path / "team-1" / "EXPORT" / "race.csv").read_bytes() == winners[0]


@pytest.mark.asyncio
async def test_create_is_exclusive_even_when_existence_check_passes(
    fs_provider, tmp_path, monkeypatch
):
    """Test the exclusive open catches a creator that slips past the existence check."""

    async def always_missing(path):
        return False

    monkeypatch.setattr(aiofiles.os.path, "exists", always_missing)

    async with fs_provider.create(StorageType.EXPORT, "race.csv") as out:
        await out.write(b"first")

    with pytest.raises(StorageItemAlreadyExistsError):
        async with fs_provider.create(StorageType.EXPORT, "race.csv") as out:
            await out.write(b"second")

    assert (tmp_path / "EXPORT" / "race.csv").read_bytes() == b"first"


@pytest.mark.asyncio
async def test_upload_removes_partial_file_when_write_fails(fs_provider, tmp_path):
    """Test a failed write does not leave a partial file behind."""
    with pytest.raises(StorageError) as exc_info:
        await fs_provider.upload(StorageType.DOCUMENT, "broken.txt", None, "not bytes")

    assert isinstance(exc_info.value.cause, TypeError)
    assert not (tmp_path / "DOCUMENT" / "broken.txt").exists()
    assert await fs_provider.exist(StorageType.DOCUMENT, "broken.txt") is False


@pytest.mark.asyncio
async def test_read_missing_item_raises_generic_storage_error(fs_provider):
    """Test read() wraps not-found as a backend failure, not an address conflict."""
    with pytest.raises(StorageError) as exc_info:
        async with fs_provider.read(StorageType.DOCUMENT, "missing.txt", "team-1"):
            pass

    assert not isinstance(exc_info.value, StorageAddressConflictError)
    assert exc_info.value.kind == StorageErrorKind.BACKEND_FAILURE
    assert isinstance(exc_info.value.cause, FileNotFoundError)


@pytest.mark.asyncio
async def test_exist_before_and_after_upload(fs_provider):
    """Test exist() is False for an unused address and True once written."""
    assert await fs_provider.exist(StorageType.IMAGE, "photo.jpg", "team-1") is False

    await fs_provider.upload(StorageType.IMAGE, "photo.jpg", "team-1", b"jpeg")

    assert await fs_provider.exist(StorageType.IMAGE, "photo.jpg", "team-1") is True
    assert await fs_provider.exist(StorageType.IMAGE, "photo.jpg", "team-2") is False


@pytest.mark.asyncio
async def test_exist_returns_false_for_invalid_address(fs_provider):
    """Test exist() never raises, even for an address that cannot be mapped."""
    assert await fs_provider.exist(StorageType.IMAGE, "../photo.jpg") is False
    assert await fs_provider.exist(StorageType.IMAGE, "photo.jpg", "") is False


@pytest.mark.asyncio
async def test_exist_returns_false_for_unknown_storage_type(fs_provider):
    """Test exist() treats an unknown type value as a missing item."""
    assert await fs_provider.exist("thumbnail", "photo.jpg", "team-1") is False


@pytest.mark.asyncio
async def test_unknown_storage_type_is_an_invalid_address(fs_provider):
    with pytest.raises(InvalidStorageAddressError) as exc_info:
        await fs_provider.upload("thumbnail", "photo.jpg", "team-1", b"jpeg")

    assert "unknown storage type 'thumbnail'" in str(exc_info.value)


@pytest.mark.asyncio
async def test_whitespace_folder_is_rejected(fs_provider, tmp_path):
    with pytest.raises(InvalidStorageAddressError):
        await fs_provider.upload(StorageType.AVATAR, "x.png", "  ", b"x")

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_delete_removes_item(fs_provider):
    """Test delete() removes the item so exist() turns False."""
    await fs_provider.upload(StorageType.ATTACHMENT, "note.txt", "team-1", b"note")

    await fs_provider.delete(StorageType.ATTACHMENT, "note.txt", "team-1")

    assert await fs_provider.exist(StorageType.ATTACHMENT, "note.txt", "team-1") is False


@pytest.mark.asyncio
async def test_delete_missing_item_raises_not_found(fs_provider):
    """Test delete() on a missing address raises an address conflict."""
    with pytest.raises(StorageItemNotFoundError) as exc_info:
        await fs_provider.delete(StorageType.ATTACHMENT, "missing.txt", "team-1")

    assert isinstance(exc_info.value, StorageAddressConflictError)
    assert exc_info.value.kind == StorageErrorKind.ADDRESS_CONFLICT
    assert exc_info.value.location.endswith("missing.txt")


@pytest.mark.asyncio
async def test_get_size_returns_content_length(fs_provider):
    """Test get_size() matches the number of uploaded bytes."""
    await fs_provider.upload(StorageType.EXPORT, "data.csv", None, b"a,b,c\n1,2,3\n")

    assert await fs_provider.get_size(StorageType.EXPORT, "data.csv") == 12


@pytest.mark.asyncio
async def test_get_size_of_empty_item(fs_provider):
    """Test get_size() of an item created without writing anything."""
    async with fs_provider.create(StorageType.EXPORT, "empty.csv"):
        pass

    assert await fs_provider.get_size(StorageType.EXPORT, "empty.csv") == 0


@pytest.mark.asyncio
async def test_get_size_missing_item_raises_not_found(fs_provider):
    """Test get_size() on a missing address raises an address conflict."""
    with pytest.raises(StorageItemNotFoundError):
        await fs_provider.get_size(StorageType.EXPORT, "missing.csv")


@pytest.mark.asyncio
async def test_move_renames_item(fs_provider, tmp_path):
    """Test move() relocates an item to another type and id in the same folder."""
    await fs_provider.upload(StorageType.ATTACHMENT, "draft.txt", "team-1", b"draft")

    await fs_provider.move(
        StorageType.ATTACHMENT, "draft.txt", StorageType.DOCUMENT, "final.txt", "team-1"
    )

    assert await fs_provider.exist(StorageType.ATTACHMENT, "draft.txt", "team-1") is False
    assert (tmp_path / "team-1" / "DOCUMENT" / "final.txt").read_bytes() == b"draft"


@pytest.mark.asyncio
async def test_move_missing_source_raises_not_found(fs_provider):
    with pytest.raises(StorageItemNotFoundError):
        await fs_provider.move(
            StorageType.ATTACHMENT, "missing.txt", StorageType.DOCUMENT, "final.txt"
        )


@pytest.mark.asyncio
async def test_move_onto_existing_target_raises_already_exists(fs_provider, tmp_path):
    """Test move() refuses to overwrite and leaves both items untouched."""
    await fs_provider.upload(StorageType.ATTACHMENT, "a.txt", None, b"a")
    await fs_provider.upload(StorageType.DOCUMENT, "b.txt", None, b"b")

    with pytest.raises(StorageItemAlreadyExistsError):
        await fs_provider.move(StorageType.ATTACHMENT, "a.txt", StorageType.DOCUMENT, "b.txt")

    assert (tmp_path / "ATTACHMENT" / "a.txt").read_bytes() == b"a"
    assert (tmp_path / "DOCUMENT" / "b.txt").read_bytes() == b"b"


@pytest.mark.asyncio
async def test_copy_duplicates_item(fs_provider):
    """Test copy() keeps the source and streams its full content to the target."""
    # Larger than one copy chunk
    payload = b"x" * (200 * 1024) + b"tail"
    await fs_provider.upload(StorageType.IMAGE, "original.png", "team-1", payload)

    await fs_provider.copy(
        StorageType.IMAGE, "original.png", StorageType.AVATAR, "copy.png", "team-1"
    )

    async with fs_provider.read(StorageType.IMAGE, "original.png", "team-1") as source:
        assert await source.read() == payload
    async with fs_provider.read(StorageType.AVATAR, "copy.png", "team-1") as source:
        assert await source.read() == payload


@pytest.mark.asyncio
async def test_copy_missing_source_raises_not_found(fs_provider):
    with pytest.raises(StorageItemNotFoundError):
        await fs_provider.copy(StorageType.IMAGE, "missing.png", StorageType.AVATAR, "copy.png")

    assert await fs_provider.exist(StorageType.AVATAR, "copy.png") is False


@pytest.mark.asyncio
async def test_copy_onto_existing_target_raises_already_exists(fs_provider):
    await fs_provider.upload(StorageType.IMAGE, "a.png", None, b"a")
    await fs_provider.upload(StorageType.AVATAR, "b.png", None, b"b")

    with pytest.raises(StorageItemAlreadyExistsError):
        await fs_provider.copy(StorageType.IMAGE, "a.png", StorageType.AVATAR, "b.png")


@pytest.mark.asyncio
async def test_invalid_address_is_rejected_before_touching_disk(tmp_path):
    """Test path traversal attempts never reach the filesystem."""
    base_path = tmp_path / "base"
    provider = FileSystemStorageProvider(base_path=base_path)

    with pytest.raises(InvalidStorageAddressError) as exc_info:
        await provider.upload(StorageType.DOCUMENT, "../../escape.txt", None, b"x")

    assert exc_info.value.kind == StorageErrorKind.INVALID_ADDRESS
    assert not (tmp_path / "escape.txt").exists()
    assert not base_path.exists()


@pytest.mark.asyncio
async def test_storage_type_value_is_accepted_as_type(fs_provider, tmp_path):
    """Test a raw StorageType value resolves to the same directory as the member."""
    await fs_provider.upload("avatar", "user-1.png", None, b"avatar")

    assert (tmp_path / "AVATAR" / "user-1.png").exists()
    assert await fs_provider.exist(StorageType.AVATAR, "user-1.png") is True
