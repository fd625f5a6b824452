"""
Conftest for storage tests - providers backed by tmp_path and moto.
"""
import uuid

import pytest
import pytest_asyncio

from filevault.storage.aws import AwsStorageProvider
from filevault.storage.fs import FileSystemStorageProvider
from filevault.storage.s3 import AwsS3Service
from tests.constants import S3


@pytest.fixture
def fs_provider(tmp_path):
    """Filesystem provider rooted in a fresh temporary directory."""
    return FileSystemStorageProvider(base_path=tmp_path)


@pytest.fixture
def bucket_name():
    """Unique bucket per test so tests never see each other's objects."""
    return f"{S3.BUCKET_PREFIX}{uuid.uuid4().hex[:12]}"


@pytest.fixture
def make_s3_service(s3_endpoint_url):
    def _make(bucket: str, region: str = S3.REGION) -> AwsS3Service:
        return AwsS3Service(
            bucket_name=bucket,
            region=region,
            endpoint_url=s3_endpoint_url,
            aws_access_key_id=S3.ACCESS_KEY_ID,
            aws_secret_access_key=S3.SECRET_ACCESS_KEY,
        )

    return _make


@pytest_asyncio.fixture
async def s3_service(make_s3_service, bucket_name):
    """S3 service whose bucket has been created on the moto server."""
    service = make_s3_service(bucket_name)
    await service.initialize()
    return service


@pytest_asyncio.fixture
async def aws_provider(s3_service):
    return AwsStorageProvider(s3_service)
