"""Business logic for file operations."""

import logging
from typing import BinaryIO, final

from django.utils import timezone

from server.apps.files.exceptions import NotFoundError
from server.apps.files.infrastructure.blob_store import BlobStore
from server.apps.files.infrastructure.metadata import (
    build_storage_path,
    detect_mime_type,
    validate_storage_path,
)
from server.apps.files.infrastructure.metadata_store import MetadataStore
from server.apps.files.logic.quota_operations import QuotaAccountant
from server.apps.files.logic.share_operations import ShareLink, ShareTokenIssuer
from server.apps.files.logic.validation import (
    validate_owner_id,
    validate_upload_size,
)
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)


@final
class FileService:
    """Orchestrates blob and metadata writes for an owner's files.

    Blob and metadata stores are not transactional with each other.
    Uploads write the blob first and delete it again if the metadata
    write fails. Deletes remove the blob first and tolerate its absence,
    so a crash in between leaves at worst a record whose content is
    reported missing on the next download.
    """

    def __init__(  # noqa: WPS211
        self,
        blob_store: BlobStore,
        metadata_store: MetadataStore,
        quota_accountant: QuotaAccountant,
        share_issuer: ShareTokenIssuer,
        enforce_plan_limit: bool = False,
    ) -> None:
        """Initialize FileService.

        Args:
            blob_store: Storage for file content.
            metadata_store: Storage for file records and accounts.
            quota_accountant: Recomputes storage usage after mutations.
            share_issuer: Mints and resolves share tokens.
            enforce_plan_limit: Reject uploads beyond the plan limit.
        """
        self._blobs = blob_store
        self._metadata = metadata_store
        self._quota = quota_accountant
        self._shares = share_issuer
        self._enforce_plan_limit = enforce_plan_limit

    def upload_file(  # noqa: WPS211
        self,
        owner_id: str,
        content: BinaryIO | bytes,
        filename: str,
        mime_type: str,
        size: int,
    ) -> FileRecord:
        """Upload file to storage and create its file record.

        Transaction safety: Upload to storage first, then create the
        record. If the record cannot be written, the uploaded blob is
        deleted from storage (rollback).

        Args:
            owner_id: Owner of the file.
            content: File bytes or file-like object.
            filename: Original filename.
            mime_type: MIME type; guessed from the filename when empty.
            size: File size in bytes.

        Returns:
            Created FileRecord.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            EmptyFileError: If size is zero.
            FileTooLargeError: If size exceeds MAX_FILE_SIZE.
            QuotaExceededError: If plan limits are enforced and exceeded.
            FileServiceError: If a store operation fails.
        """
        validate_owner_id(owner_id)
        validate_upload_size(size)
        if self._enforce_plan_limit:
            self._quota.check_quota(owner_id, size)

        uploaded_at = timezone.now()
        storage_path = build_storage_path(owner_id, filename, uploaded_at)
        mime_type = mime_type or detect_mime_type(filename)

        # Step 1: Upload to storage first
        try:
            logger.info(
                'Starting upload for owner %s: %s',
                owner_id,
                storage_path,
            )
            saved_path = self._blobs.put(storage_path, content)
        except Exception:
            logger.exception('Failed to upload file to storage: %s', storage_path)
            raise

        download_url = self._blobs.url(saved_path)

        # Step 2: Create the file record
        try:
            file_record = self._metadata.create_file(
                owner_id=owner_id,
                name=filename,
                size=size,
                mime_type=mime_type,
                uploaded_at=uploaded_at,
                storage_path=saved_path,
                download_url=download_url,
            )
        except Exception:
            # Rollback: Delete blob since its record could not be written
            logger.exception(
                'Metadata write failed, rolling back storage upload: %s',
                saved_path,
            )
            self._blobs.rollback(saved_path)
            raise

        logger.info(
            'File record created: %s (ID: %s)',
            saved_path,
            file_record.id,
        )

        self._quota.refresh_storage_used(owner_id)
        return file_record

    def list_files(self, owner_id: str) -> list[FileRecord]:
        """List all files of an owner.

        Args:
            owner_id: Owner of the files.

        Returns:
            File records, newest first; empty when the owner has none.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            FileServiceError: If the metadata store fails.
        """
        validate_owner_id(owner_id)
        logger.debug('Listing files for owner %s', owner_id)
        return self._metadata.list_files(owner_id)

    def delete_file(self, owner_id: str, file_id: str, storage_path: str) -> None:
        """Delete file content and its record.

        Deleting is idempotent: a blob that is already gone does not stop
        the record from being removed, and removing a missing record is
        a no-op. Any other storage error aborts before the record is
        touched.

        Args:
            owner_id: Owner of the file.
            file_id: ID of the file record.
            storage_path: Blob path of the file.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            StorageUnauthorizedError: If the path belongs to another owner.
            FileServiceError: If a store operation fails.
        """
        validate_owner_id(owner_id)
        validate_storage_path(owner_id, storage_path)

        logger.info('Deleting file: ID=%s, path=%s', file_id, storage_path)

        # Step 1: Delete blob, tolerating its absence
        try:
            self._blobs.delete(storage_path)
        except NotFoundError:
            logger.warning(
                'File not found in storage (already deleted?): %s',
                storage_path,
            )
        except Exception:
            logger.exception('Failed to delete file from storage: %s', storage_path)
            raise

        # Step 2: Delete record
        if self._metadata.delete_file(owner_id, file_id):
            logger.info('File record deleted: ID=%s', file_id)
        else:
            logger.info('File record already gone: ID=%s', file_id)

        self._quota.refresh_storage_used(owner_id)

    def download_file(
        self,
        owner_id: str,
        storage_path: str,
        filename: str,
    ) -> bytes:
        """Fetch file content for the caller to save locally.

        Args:
            owner_id: Owner of the file.
            storage_path: Blob path of the file.
            filename: Name the caller will save the content under.

        Returns:
            File content.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            StorageUnauthorizedError: If the path belongs to another owner.
            NotFoundError: If the content is missing from storage.
            FileServiceError: If the blob store fails.
        """
        validate_owner_id(owner_id)
        validate_storage_path(owner_id, storage_path)

        try:
            content = self._blobs.get(storage_path)
        except Exception:
            logger.exception('Failed to download file: %s', storage_path)
            raise

        logger.info('File downloaded: %s (%d bytes)', filename, len(content))
        return content

    def create_share_link(
        self,
        owner_id: str,
        file_id: str,
        expiry_hours: int,
    ) -> ShareLink:
        """Share one of the owner's files through a public link.

        See ShareTokenIssuer.create_share_link.
        """
        return self._shares.create_share_link(owner_id, file_id, expiry_hours)

    def resolve_share_token(self, token: str) -> FileRecord:
        """Find the file behind a share token, enforcing expiry.

        See ShareTokenIssuer.resolve_share_token.
        """
        return self._shares.resolve_share_token(token)

    def download_shared_file(self, token: str) -> tuple[FileRecord, bytes]:
        """Download a file through its share token.

        Args:
            token: Token taken from a share URL.

        Returns:
            The shared file record and its content.

        Raises:
            ShareLinkNotFoundError: If the token is unknown.
            ShareLinkExpiredError: If the link is past its expiry.
            NotFoundError: If the content is missing from storage.
            FileServiceError: If the blob store fails.
        """
        file_record = self._shares.resolve_share_token(token)
        content = self._blobs.get(file_record.storage_path)
        logger.info(
            'Shared file downloaded: ID=%s (%d bytes)',
            file_record.id,
            len(content),
        )
        return file_record, content
