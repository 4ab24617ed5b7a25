"""Shared fixtures for files app tests."""

import boto3
import pytest
from moto import mock_aws

from server.apps.files.infrastructure.storage import FileStorage
from server.apps.files.services import build_services

BUCKET_NAME = 'cloudvault'
SHARE_ORIGIN = 'https://vault.test'


@pytest.fixture
def mock_s3():
    """Mock S3 service with the cloudvault bucket.

    Yields:
        boto3 S3 resource with cloudvault bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=BUCKET_NAME)

        yield conn


@pytest.fixture
def file_storage(mock_s3):
    """Create a storage backend bound to the mocked bucket.

    Returns:
        FileStorage instance.
    """
    return FileStorage(
        bucket_name=BUCKET_NAME,
        access_key='testing',
        secret_key='testing',
        region_name='us-east-1',
        file_overwrite=False,
    )


@pytest.fixture
def services(db, file_storage):
    """Wire every files component against the mocked bucket.

    Returns:
        FileServices instance.
    """
    return build_services(
        storage=file_storage,
        share_origin=SHARE_ORIGIN,
        enforce_plan_limit=False,
    )


@pytest.fixture
def account(services):
    """Register the test owner.

    Returns:
        Account of owner 'u1'.
    """
    return services.accounts.register_account('u1', 'u1@example.com')


@pytest.fixture
def uploaded_file(services, account):
    """Upload a small text file for owner 'u1'.

    Returns:
        Created FileRecord.
    """
    return services.files.upload_file(
        'u1',
        b'test file content',
        'notes.txt',
        'text/plain',
        17,
    )


@pytest.fixture
def bucket_keys(mock_s3):
    """List the keys currently in the mocked bucket.

    Returns:
        Function returning sorted keys.
    """
    def list_keys() -> list[str]:
        return sorted(
            obj.key for obj in mock_s3.Bucket(BUCKET_NAME).objects.all()
        )
    return list_keys
