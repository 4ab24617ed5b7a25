"""Business logic for public share links."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final, final

from django.utils import timezone

from server.apps.files.exceptions import (
    ShareLinkExpiredError,
    ShareLinkNotFoundError,
)
from server.apps.files.infrastructure.metadata_store import MetadataStore
from server.apps.files.logic.validation import (
    validate_expiry_hours,
    validate_owner_id,
)
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)

# 16 random bytes = 128 bits, base64url encoded to 22 characters
_SHARE_TOKEN_BYTES: Final = 16


def generate_share_token() -> str:
    """Generate an unguessable, URL-safe share token.

    Returns:
        Token string with 128 bits of entropy.
    """
    return secrets.token_urlsafe(_SHARE_TOKEN_BYTES)


@dataclass(frozen=True, slots=True)
class ShareLink:
    """Public link to a shared file."""

    token: str
    url: str
    expires_at: datetime


@final
class ShareTokenIssuer:
    """Mints expiring share tokens and resolves them back to files."""

    def __init__(self, metadata_store: MetadataStore, origin: str) -> None:
        """Initialize ShareTokenIssuer.

        Args:
            metadata_store: Store holding file records.
            origin: Public origin for share URLs (e.g., 'https://vault.app').
        """
        self._metadata = metadata_store
        self._origin = origin.rstrip('/')

    def build_url(self, token: str) -> str:
        """Build the public URL for a token."""
        return f'{self._origin}/share/{token}'

    def create_share_link(
        self,
        owner_id: str,
        file_id: str,
        expiry_hours: int,
    ) -> ShareLink:
        """Share a file through a time-limited public link.

        Ownership is checked only through the (owner_id, file_id) lookup.

        Args:
            owner_id: Owner of the file.
            file_id: File to share.
            expiry_hours: Link lifetime in hours (any positive integer).

        Returns:
            The new share link.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            InvalidExpiryError: If expiry_hours is not positive.
            NotFoundError: If the owner has no such file.
            FileServiceError: If the metadata store fails.
        """
        validate_owner_id(owner_id)
        validate_expiry_hours(expiry_hours)

        token = generate_share_token()
        expires_at = timezone.now() + timedelta(hours=expiry_hours)

        try:
            self._metadata.mark_shared(owner_id, file_id, token, expires_at)
        except Exception:
            logger.exception(
                'Failed to create share link: owner=%s, file=%s',
                owner_id,
                file_id,
            )
            raise

        logger.info(
            'Share link created: owner=%s, file=%s, expires=%s',
            owner_id,
            file_id,
            expires_at.isoformat(),
        )
        return ShareLink(
            token=token,
            url=self.build_url(token),
            expires_at=expires_at,
        )

    def resolve_share_token(self, token: str) -> FileRecord:
        """Find the file behind a share token.

        This is a privileged lookup that does not need the owner's
        identity. Expiry is enforced here, at access time.

        Args:
            token: Token taken from a share URL.

        Returns:
            The shared file record.

        Raises:
            ShareLinkNotFoundError: If no file is shared under this token.
            ShareLinkExpiredError: If the link is past its expiry.
        """
        if not token:
            raise ShareLinkNotFoundError('Invalid share link')

        file_record = self._metadata.find_by_share_token(token)
        if file_record is None or not file_record.is_shared:
            raise ShareLinkNotFoundError('Invalid share link')

        if file_record.is_share_expired():
            logger.info(
                'Expired share link used: file=%s, expired=%s',
                file_record.id,
                file_record.share_expiry,
            )
            raise ShareLinkExpiredError('This share link has expired')

        return file_record
