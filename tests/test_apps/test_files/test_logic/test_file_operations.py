"""Tests for file operations business logic."""

import re
from unittest.mock import Mock

import pytest

from server.apps.files.exceptions import (
    AuthenticationRequiredError,
    EmptyFileError,
    FileTooLargeError,
    NetworkError,
    NotFoundError,
    QuotaExceededError,
    StorageUnauthorizedError,
)
from server.apps.files.infrastructure.blob_store import BlobStore
from server.apps.files.infrastructure.metadata_store import MetadataStore
from server.apps.files.logic.file_operations import FileService
from server.apps.files.logic.quota_operations import QuotaAccountant
from server.apps.files.logic.share_operations import ShareTokenIssuer
from server.apps.files.models import MAX_FILE_SIZE, Account, FileRecord
from server.apps.files.services import build_services

_REPORT_SIZE = 2 * 1024 * 1024


@pytest.fixture
def spy_service():
    """FileService whose collaborators record every call.

    Returns:
        Tuple of (service, list of collaborator mocks).
    """
    collaborators = [
        Mock(spec=BlobStore),
        Mock(spec=MetadataStore),
        Mock(spec=QuotaAccountant),
        Mock(spec=ShareTokenIssuer),
    ]
    return FileService(*collaborators), collaborators


def _assert_no_io(collaborators) -> None:
    for collaborator in collaborators:
        assert collaborator.method_calls == []


@pytest.mark.parametrize('size', [0, -1])
def test_upload_empty_file_rejected_before_io(spy_service, size):
    """Test empty uploads fail before touching any store."""
    service, collaborators = spy_service

    with pytest.raises(EmptyFileError):
        service.upload_file('u1', b'', 'empty.txt', 'text/plain', size)

    _assert_no_io(collaborators)


def test_upload_too_large_rejected_before_io(spy_service):
    """Test uploads above 5 GiB fail before touching any store."""
    service, collaborators = spy_service

    with pytest.raises(FileTooLargeError) as exc_info:
        service.upload_file(
            'u1',
            b'x',
            'huge.bin',
            'application/octet-stream',
            MAX_FILE_SIZE + 1,
        )

    assert exc_info.value.size_bytes == MAX_FILE_SIZE + 1
    assert exc_info.value.max_bytes == 5 * 1024 ** 3
    _assert_no_io(collaborators)


@pytest.mark.parametrize('owner_id', ['', '   ', None])
def test_upload_requires_owner(spy_service, owner_id):
    """Test uploads without an owner fail before touching any store."""
    service, collaborators = spy_service

    with pytest.raises(AuthenticationRequiredError):
        service.upload_file(owner_id, b'data', 'a.txt', 'text/plain', 4)

    _assert_no_io(collaborators)


@pytest.mark.django_db
def test_upload_file_success(services, account, bucket_keys):
    """Test successful file upload (S3 + metadata)."""
    file_record = services.files.upload_file(
        'u1',
        b'test file content',
        'notes.txt',
        'text/plain',
        17,
    )

    assert file_record.id
    assert file_record.owner_id == 'u1'
    assert file_record.name == 'notes.txt'
    assert file_record.size == 17
    assert file_record.mime_type == 'text/plain'
    assert file_record.is_shared is False
    assert file_record.share_token is None
    assert file_record.share_expiry is None
    assert re.fullmatch(r'users/u1/\d{13}_notes\.txt', file_record.storage_path)
    assert file_record.storage_path in file_record.download_url

    assert bucket_keys() == [file_record.storage_path]
    assert services.blob_store.get(file_record.storage_path) == (
        b'test file content'
    )


@pytest.mark.django_db
def test_upload_then_list(services, account):
    """Test that an uploaded file shows up in the owner's listing."""
    services.files.upload_file(
        'u1',
        b'%PDF-1.4',
        'my report.pdf',
        'application/pdf',
        8,
    )

    files = services.files.list_files('u1')

    assert len(files) == 1
    assert files[0].name == 'my report.pdf'
    assert files[0].size == 8
    assert files[0].mime_type == 'application/pdf'
    assert re.fullmatch(r'users/u1/\d{13}_my_report\.pdf', files[0].storage_path)


@pytest.mark.django_db
def test_upload_guesses_missing_mime_type(services, account):
    """Test MIME type falls back to a guess from the filename."""
    file_record = services.files.upload_file('u1', b'abc', 'a.png', '', 3)

    assert file_record.mime_type == 'image/png'


@pytest.mark.django_db
def test_upload_updates_storage_used(services, account, uploaded_file):
    """Test upload recomputes the owner's storage usage."""
    account.refresh_from_db()

    assert account.storage_used == uploaded_file.size


@pytest.mark.django_db
def test_upload_succeeds_when_quota_update_fails(services, caplog):
    """Test bookkeeping failures never fail the upload.

    Owner 'u2' has no account, so the storage recompute fails.
    """
    file_record = services.files.upload_file('u2', b'abc', 'a.txt', '', 3)

    assert FileRecord.objects.filter(id=file_record.id).exists()
    assert 'Failed to update storage used' in caplog.text


@pytest.mark.django_db
def test_upload_rolls_back_blob_when_metadata_fails(file_storage, bucket_keys):
    """Test the blob is removed again when the record cannot be written."""
    metadata_store = Mock(spec=MetadataStore)
    metadata_store.create_file.side_effect = NetworkError('db down')
    service = FileService(
        BlobStore(file_storage),
        metadata_store,
        Mock(spec=QuotaAccountant),
        Mock(spec=ShareTokenIssuer),
    )

    with pytest.raises(NetworkError):
        service.upload_file('u1', b'abc', 'a.txt', 'text/plain', 3)

    assert bucket_keys() == []


@pytest.mark.django_db
def test_upload_rejected_over_plan_limit(file_storage, account, bucket_keys):
    """Test the opt-in plan limit check blocks uploads before storage."""
    Account.objects.filter(id='u1').update(storage_limit=10)
    services = build_services(
        storage=file_storage,
        share_origin='https://vault.test',
        enforce_plan_limit=True,
    )

    with pytest.raises(QuotaExceededError) as exc_info:
        services.files.upload_file('u1', b'a' * 17, 'a.txt', 'text/plain', 17)

    assert exc_info.value.quota_bytes == 10
    assert exc_info.value.required_bytes == 17
    assert bucket_keys() == []
    assert FileRecord.objects.count() == 0


@pytest.mark.django_db
def test_plan_limit_not_enforced_by_default(services, account):
    """Test only the per-file cap applies unless plan limits are enabled."""
    Account.objects.filter(id='u1').update(storage_limit=10)

    file_record = services.files.upload_file(
        'u1',
        b'a' * 17,
        'a.txt',
        'text/plain',
        17,
    )

    assert file_record.size == 17


@pytest.mark.django_db
def test_list_files_empty(services):
    """Test listing an owner without files returns an empty list."""
    assert services.files.list_files('nobody') == []


@pytest.mark.django_db
def test_list_files_owner_isolation(services, account, uploaded_file):
    """Test that listing only returns the owner's files."""
    services.accounts.register_account('u2', 'u2@example.com')
    services.files.upload_file('u2', b'other', 'other.txt', 'text/plain', 5)

    files = services.files.list_files('u1')

    assert [file_record.id for file_record in files] == [uploaded_file.id]


def test_list_files_requires_owner(spy_service):
    """Test listing without an owner fails."""
    service, collaborators = spy_service

    with pytest.raises(AuthenticationRequiredError):
        service.list_files('')

    _assert_no_io(collaborators)


@pytest.mark.django_db
def test_delete_file_success(services, account, uploaded_file, bucket_keys):
    """Test deleting removes blob, record and usage."""
    services.files.delete_file(
        'u1',
        uploaded_file.id,
        uploaded_file.storage_path,
    )

    assert services.files.list_files('u1') == []
    assert bucket_keys() == []
    account.refresh_from_db()
    assert account.storage_used == 0


@pytest.mark.django_db
def test_delete_file_is_idempotent(services, account, uploaded_file):
    """Test a second delete of the same file is a no-op success."""
    services.files.delete_file(
        'u1',
        uploaded_file.id,
        uploaded_file.storage_path,
    )

    services.files.delete_file(
        'u1',
        uploaded_file.id,
        uploaded_file.storage_path,
    )

    assert services.files.list_files('u1') == []


@pytest.mark.django_db
def test_delete_file_blob_removed_out_of_band(
    services,
    account,
    uploaded_file,
    mock_s3,
):
    """Test delete still removes the record when the blob is already gone."""
    mock_s3.Object('cloudvault', uploaded_file.storage_path).delete()

    services.files.delete_file(
        'u1',
        uploaded_file.id,
        uploaded_file.storage_path,
    )

    assert not FileRecord.objects.filter(id=uploaded_file.id).exists()
    account.refresh_from_db()
    assert account.storage_used == 0


def test_delete_file_aborts_on_storage_error(spy_service):
    """Test storage errors other than not-found keep the record."""
    service, (blob_store, metadata_store, quota, _) = spy_service
    blob_store.delete.side_effect = NetworkError('offline')

    with pytest.raises(NetworkError):
        service.delete_file('u1', 'abc', 'users/u1/1_a.txt')

    metadata_store.delete_file.assert_not_called()
    quota.refresh_storage_used.assert_not_called()


@pytest.mark.django_db
def test_delete_file_of_other_owner_rejected(services, account, uploaded_file):
    """Test an owner cannot delete blobs outside their prefix."""
    with pytest.raises(StorageUnauthorizedError):
        services.files.delete_file(
            'u2',
            uploaded_file.id,
            uploaded_file.storage_path,
        )

    assert FileRecord.objects.filter(id=uploaded_file.id).exists()


@pytest.mark.django_db
def test_download_file(services, uploaded_file):
    """Test downloading returns the uploaded bytes."""
    content = services.files.download_file(
        'u1',
        uploaded_file.storage_path,
        uploaded_file.name,
    )

    assert content == b'test file content'


@pytest.mark.django_db
def test_download_missing_content(services, uploaded_file, mock_s3):
    """Test a record whose blob is gone reports the content as missing."""
    mock_s3.Object('cloudvault', uploaded_file.storage_path).delete()

    with pytest.raises(NotFoundError):
        services.files.download_file(
            'u1',
            uploaded_file.storage_path,
            uploaded_file.name,
        )


def test_download_requires_owner(spy_service):
    """Test downloading without an owner fails before storage access."""
    service, collaborators = spy_service

    with pytest.raises(AuthenticationRequiredError):
        service.download_file('', 'users/u1/1_a.txt', 'a.txt')

    _assert_no_io(collaborators)


@pytest.mark.django_db
def test_storage_used_converges(services, account):
    """Test usage equals the listed sizes after uploads and deletes."""
    sizes = [5, 11, 23, 42]
    records = [
        services.files.upload_file(
            'u1',
            b'x' * size,
            f'file{index}.bin',
            '',
            size,
        )
        for index, size in enumerate(sizes)
    ]
    for file_record in records[1::2]:
        services.files.delete_file(
            'u1',
            file_record.id,
            file_record.storage_path,
        )

    total = services.quota_accountant.recompute_storage_used('u1')

    listed = services.files.list_files('u1')
    assert total == sum(file_record.size for file_record in listed) == 5 + 23
    account.refresh_from_db()
    assert account.storage_used == total


@pytest.mark.django_db
def test_report_lifecycle(services, account):
    """Test upload, share and delete of a 2 MiB report."""
    file_record = services.files.upload_file(
        'u1',
        b'r' * _REPORT_SIZE,
        'report.pdf',
        'application/pdf',
        _REPORT_SIZE,
    )
    account.refresh_from_db()
    assert account.storage_used == 2097152

    share_link = services.files.create_share_link('u1', file_record.id, 24)
    assert share_link.url == f'https://vault.test/share/{share_link.token}'

    services.files.delete_file('u1', file_record.id, file_record.storage_path)

    assert services.files.list_files('u1') == []
    account.refresh_from_db()
    assert account.storage_used == 0
