"""Business logic for storage quota operations."""

import logging
from typing import final

from server.apps.files.exceptions import QuotaExceededError
from server.apps.files.infrastructure.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

# Field name constant to avoid string literal over-use
_STORAGE_USED_FIELD = 'storage_used'  # noqa: WPS226


@final
class QuotaAccountant:
    """Keeps ``Account.storage_used`` in line with the owner's files.

    Usage is always re-derived from scratch rather than incremented, so it
    converges after any sequence of uploads and deletes. There is no
    locking: two concurrent recomputes may commit out of order and the
    last write wins.
    """

    def __init__(self, metadata_store: MetadataStore) -> None:
        """Initialize QuotaAccountant.

        Args:
            metadata_store: Store holding file records and accounts.
        """
        self._metadata = metadata_store

    def recompute_storage_used(self, owner_id: str) -> int:
        """Recalculate owner's storage usage from actual files.

        Args:
            owner_id: Owner to recalculate usage for.

        Returns:
            New calculated usage in bytes.

        Raises:
            NotFoundError: If the owner has no account.
            FileServiceError: If a store call fails.
        """
        total = self._metadata.sum_file_sizes(owner_id)

        account = self._metadata.get_account(owner_id)
        old_usage = account.storage_used
        account.storage_used = total
        self._metadata.update_account(account, _STORAGE_USED_FIELD)

        logger.info(
            'Recalculated usage for owner %s: %d -> %d bytes',
            owner_id,
            old_usage,
            total,
        )

        return total

    def refresh_storage_used(self, owner_id: str) -> None:
        """Recompute usage after a file mutation, ignoring failures.

        Bookkeeping must never fail the primary operation, so errors are
        logged and swallowed. Callers cannot observe drift from here.

        Args:
            owner_id: Owner whose files changed.
        """
        try:
            self.recompute_storage_used(owner_id)
        except Exception:
            logger.exception(
                'Failed to update storage used for owner %s',
                owner_id,
            )

    def check_quota(self, owner_id: str, size_bytes: int) -> None:
        """Check if owner's plan has room for an upload.

        Args:
            owner_id: Owner to check quota for.
            size_bytes: Size of the upload in bytes.

        Raises:
            QuotaExceededError: If upload would exceed the plan limit.
            NotFoundError: If the owner has no account.
        """
        account = self._metadata.get_account(owner_id)

        if not account.has_space_for(size_bytes):
            logger.warning(
                'Quota exceeded for owner %s: need %d, have %d available',
                owner_id,
                size_bytes,
                account.available_bytes(),
            )
            raise QuotaExceededError(
                quota_bytes=account.storage_limit,
                used_bytes=account.storage_used,
                required_bytes=size_bytes,
            )
