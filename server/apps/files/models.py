"""Database models for files app."""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Final, final, override

from django.db import models
from django.utils import timezone

# Constants for field max lengths
_OWNER_ID_MAX_LENGTH: Final = 128
_FILE_ID_MAX_LENGTH: Final = 32  # uuid4 hex
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_STORAGE_PATH_MAX_LENGTH: Final = 1024
_SHARE_TOKEN_MAX_LENGTH: Final = 64
_URL_MAX_LENGTH: Final = 2048

_GIB: Final = 1024 * 1024 * 1024

# Absolute per-file ceiling, independent of the account plan
MAX_FILE_SIZE: Final = 5 * _GIB


def _generate_file_id() -> str:
    return uuid.uuid4().hex


class Plan(models.TextChoices):
    """Storage plan of an account."""

    FREE = 'free', 'Free'
    PRO = 'pro', 'Pro'


# Storage limit per plan in bytes
STORAGE_LIMITS: Final = {
    Plan.FREE: 1 * _GIB,
    Plan.PRO: 20 * _GIB,
}


def storage_limit_for(plan: str) -> int:
    """Get the storage limit of a plan.

    Args:
        plan: Plan value ('free' or 'pro').

    Returns:
        Limit in bytes.

    Raises:
        ValueError: If plan is unknown.
    """
    # Enum members hash by name, so look up through the enum
    return STORAGE_LIMITS[Plan(plan)]


@final
class Account(models.Model):
    """Storage account of an externally authenticated owner.

    The primary key is the opaque owner id handed over by the identity
    provider. ``storage_used`` is a cached aggregate that is rebuilt from
    the owner's file records after every upload or delete.
    """

    id = models.CharField(
        max_length=_OWNER_ID_MAX_LENGTH,
        primary_key=True,
        help_text='Owner id supplied by the identity provider',
    )

    email = models.EmailField()

    plan = models.CharField(
        max_length=8,
        choices=Plan.choices,
        default=Plan.FREE,
    )

    storage_limit = models.BigIntegerField(
        default=STORAGE_LIMITS[Plan.FREE],
        help_text='Storage limit in bytes, fixed by plan',
    )

    storage_used = models.BigIntegerField(
        default=0,
        help_text='Sum of file sizes in bytes (recomputed, eventually exact)',
    )

    share_token = models.CharField(
        max_length=_SHARE_TOKEN_MAX_LENGTH,
        help_text='Account-level share token',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Account'  # type: ignore[mutable-override]
        verbose_name_plural = 'Accounts'  # type: ignore[mutable-override]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(storage_limit__gte=0),
                name='accounts_storage_limit_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(storage_used__gte=0),
                name='accounts_storage_used_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.email}: {self.storage_used}/{self.storage_limit}'

    def has_space_for(self, size_bytes: int) -> bool:
        """Check if there's enough space for the given size.

        Args:
            size_bytes: Size to check in bytes.

        Returns:
            True if there's enough space, False otherwise.
        """
        return self.storage_used + size_bytes <= self.storage_limit

    def available_bytes(self) -> int:
        """Get available storage space.

        Returns:
            Available bytes (never negative).
        """
        return max(0, self.storage_limit - self.storage_used)


@final
class FileRecord(models.Model):
    """Metadata of one uploaded file.

    The blob itself lives in the S3-compatible bucket under
    ``storage_path``, which follows the pattern
    ``users/{owner_id}/{epoch_millis}_{sanitized_name}``.
    """

    id = models.CharField(
        max_length=_FILE_ID_MAX_LENGTH,
        primary_key=True,
        default=_generate_file_id,
        editable=False,
    )

    owner_id = models.CharField(
        max_length=_OWNER_ID_MAX_LENGTH,
        db_index=True,
    )

    name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        help_text='Original filename as uploaded',
    )

    size = models.BigIntegerField(
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        default='application/octet-stream',
    )

    uploaded_at = models.DateTimeField(default=timezone.now)

    storage_path = models.CharField(
        max_length=_STORAGE_PATH_MAX_LENGTH,
        unique=True,
        help_text='Blob locator: users/{owner_id}/{ts}_{name}',
    )

    download_url = models.CharField(
        max_length=_URL_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Best-effort URL captured at upload time',
    )

    is_shared = models.BooleanField(default=False)

    share_token = models.CharField(
        max_length=_SHARE_TOKEN_MAX_LENGTH,
        unique=True,
        null=True,
        blank=True,
        default=None,
    )

    share_expiry = models.DateTimeField(
        null=True,
        blank=True,
        default=None,
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'File record'  # type: ignore[mutable-override]
        verbose_name_plural = 'File records'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at']

        indexes = [
            # Optimize recent files queries
            models.Index(
                fields=['owner_id', '-uploaded_at'],
                name='files_owner_recent_idx',
            ),
        ]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(size__gt=0),
                name='files_size_positive',
            ),
            # Token and expiry are set together or not at all
            models.CheckConstraint(
                condition=(
                    models.Q(share_token__isnull=True, share_expiry__isnull=True)
                    | models.Q(
                        share_token__isnull=False,
                        share_expiry__isnull=False,
                    )
                ),
                name='files_share_token_expiry_paired',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.name}'

    def get_extension(self) -> str:
        """Extract file extension.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        return Path(self.name).suffix.lstrip('.').lower()

    def is_share_expired(self, now: datetime | None = None) -> bool:
        """Check whether the share link of this file has expired.

        Files that were never shared count as expired.

        Args:
            now: Reference time, defaults to the current time.

        Returns:
            True unless the file is shared and ``now < share_expiry``.
        """
        if not self.is_shared or self.share_expiry is None:
            return True
        reference = now or timezone.now()
        return reference >= self.share_expiry
