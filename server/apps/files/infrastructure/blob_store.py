"""Blob store adapter on top of a Django storage backend.

Wraps any ``Storage`` (``FileStorage`` in production) and translates the
backend's exceptions into the files app error taxonomy.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO, Final, final

from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)
from botocore.exceptions import ConnectionError as BotoConnectionError
from django.core.files.base import ContentFile
from django.core.files.base import File as DjangoFile
from django.core.files.storage import Storage

from server.apps.files.exceptions import (
    FileServiceError,
    NetworkError,
    NotFoundError,
    StorageTimeoutError,
    StorageUnauthorizedError,
    UnknownStorageError,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES: Final = frozenset(('404', 'NoSuchKey', 'NotFound'))
_UNAUTHORIZED_CODES: Final = frozenset((
    '401',
    '403',
    'AccessDenied',
    'AllAccessDisabled',
    'InvalidAccessKeyId',
    'NoSuchBucket',
    'SignatureDoesNotMatch',
))
_TIMEOUT_CODES: Final = frozenset(('RequestTimeout', '408'))


def translate_blob_error(error: Exception) -> FileServiceError:  # noqa: C901
    """Map a storage backend exception to the files error taxonomy.

    Args:
        error: Exception raised by the storage backend or boto3.

    Returns:
        Matching FileServiceError (not raised).
    """
    if isinstance(error, FileServiceError):
        return error
    if isinstance(error, ClientError):
        code = str(error.response.get('Error', {}).get('Code', ''))
        if code in _NOT_FOUND_CODES:
            return NotFoundError('File content is missing from storage')
        if code in _UNAUTHORIZED_CODES:
            return StorageUnauthorizedError(
                'Storage access denied. Check bucket permissions '
                f'and credentials ({code}).',
            )
        if code in _TIMEOUT_CODES:
            return StorageTimeoutError(
                'Storage request timed out. Please try again.',
            )
        return UnknownStorageError(f'Storage request failed: {error}')
    if isinstance(error, NoCredentialsError | PartialCredentialsError):
        return StorageUnauthorizedError(
            'Storage credentials are missing or incomplete.',
        )
    if isinstance(error, ConnectTimeoutError | ReadTimeoutError | TimeoutError):
        return StorageTimeoutError(
            'Storage request timed out. Please try again.',
        )
    if isinstance(
        error,
        EndpointConnectionError | BotoConnectionError | ConnectionError,
    ):
        return NetworkError(
            'Network error while talking to storage. '
            'Check your connection and try again.',
        )
    if isinstance(error, FileNotFoundError):
        return NotFoundError('File content is missing from storage')
    return UnknownStorageError(f'Storage request failed: {error}')


@contextmanager
def _translated_errors(operation: str, path: str) -> Iterator[None]:
    try:
        yield
    except FileServiceError:
        raise
    except Exception as error:
        logger.warning('Blob %s failed for %s: %s', operation, path, error)
        raise translate_blob_error(error) from error


@final
class BlobStore:
    """Binary storage addressed by path."""

    def __init__(self, storage: Storage) -> None:
        """Initialize BlobStore.

        Args:
            storage: Django storage backend holding the blobs.
        """
        self._storage = storage

    @property
    def storage(self) -> Storage:
        """Underlying Django storage backend."""
        return self._storage

    def put(self, path: str, content: BinaryIO | bytes) -> str:
        """Write a blob.

        Args:
            path: Requested storage path.
            content: Bytes or file-like object.

        Returns:
            Path actually used by the backend (it never overwrites).

        Raises:
            FileServiceError: Translated backend failure.
        """
        if isinstance(content, bytes):
            payload: DjangoFile = ContentFile(content)
        elif isinstance(content, DjangoFile):
            payload = content
        else:
            payload = DjangoFile(content)

        with _translated_errors('upload', path):
            return self._storage.save(path, payload)

    def get(self, path: str) -> bytes:
        """Read a whole blob.

        Args:
            path: Storage path.

        Returns:
            Blob content.

        Raises:
            NotFoundError: If the blob does not exist.
            FileServiceError: Other translated backend failure.
        """
        with _translated_errors('download', path):
            with self._storage.open(path, 'rb') as blob:
                return blob.read()

    def exists(self, path: str) -> bool:
        """Check whether a blob exists.

        Args:
            path: Storage path.

        Returns:
            True if present.
        """
        with _translated_errors('lookup', path):
            return self._storage.exists(path)

    def delete(self, path: str) -> None:
        """Delete a blob.

        Args:
            path: Storage path.

        Raises:
            NotFoundError: If the blob is already absent.
            FileServiceError: Other translated backend failure.
        """
        if not self.exists(path):
            raise NotFoundError(f'Blob already absent: {path}')
        with _translated_errors('delete', path):
            self._storage.delete(path)

    def rollback(self, path: str) -> None:
        """Best-effort removal of a blob whose metadata write failed.

        Args:
            path: Storage path of the orphaned blob.
        """
        rollback_upload = getattr(self._storage, 'rollback_upload', None)
        if rollback_upload is not None:
            rollback_upload(path)
            return
        try:
            self._storage.delete(path)
        except Exception:
            logger.exception('Failed to rollback upload, orphaned file: %s', path)

    def url(self, path: str) -> str:
        """Get a retrievable URL for a blob.

        Falls back to a raw ``s3://bucket/path`` locator when the backend
        cannot produce a URL.

        Args:
            path: Storage path.

        Returns:
            URL or locator string.
        """
        try:
            return self._storage.url(path)
        except Exception:
            logger.warning(
                'Could not get download URL, using raw locator: %s',
                path,
                exc_info=True,
            )
            bucket = getattr(self._storage, 'bucket_name', '') or 'storage'
            return f's3://{bucket}/{path}'
