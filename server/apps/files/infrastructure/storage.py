"""S3-compatible storage backend for owner blobs."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, final, override

from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@contextmanager
def _logged(action: str, name: str) -> Iterator[None]:
    try:
        yield
    except Exception:
        logger.exception('Storage %s failed: %s', action, name)
        raise


@final
class FileStorage(S3Storage):
    """Bucket holding every owner's blobs under ``users/{owner_id}/``.

    Differs from plain S3Storage in that existing keys are never
    overwritten unless explicitly configured, and that uploads whose
    file record could not be written can be rolled back.
    """

    @override
    def get_default_settings(self) -> dict[str, Any]:
        """Default to unique blob names instead of overwriting."""
        defaults = super().get_default_settings()
        defaults['file_overwrite'] = False
        return defaults

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Upload a blob.

        Args:
            name: Requested storage path.
            content: Django File with the blob content.
            max_length: Optional maximum length for the path.

        Returns:
            Path actually used, which differs from name on collisions.
        """
        with _logged('upload', name):
            saved_name = super().save(name, content, max_length)
        logger.info(
            'Stored blob %s (%s bytes)',
            saved_name,
            getattr(content, 'size', '?'),
        )
        return saved_name

    @override
    def delete(self, name: str) -> None:
        """Remove a blob; S3 treats absent keys as already deleted."""
        with _logged('delete', name):
            super().delete(name)
        logger.info('Removed blob %s', name)

    def rollback_upload(self, name: str) -> None:
        """Remove a blob left behind by a failed metadata write.

        Never raises. If removal fails the blob stays orphaned under the
        owner's prefix and the failure is logged.

        Args:
            name: Storage path of the orphaned blob.
        """
        logger.warning('Rolling back upload of %s', name)
        try:
            self.delete(name)
        except Exception:
            logger.exception('Rollback failed, orphaned blob: %s', name)
