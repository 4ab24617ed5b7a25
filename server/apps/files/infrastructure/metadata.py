"""Metadata and storage path utilities for files."""

import mimetypes
import re
from datetime import datetime
from pathlib import PurePosixPath
from typing import Final

from server.apps.files.exceptions import StorageUnauthorizedError

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_USERS_ROOT: Final = 'users'
_UNSAFE_NAME_CHARS: Final = re.compile(r'[\s/\\]+')
_SIZE_UNITS: Final = ('Bytes', 'KB', 'MB', 'GB')
_SIZE_BASE: Final = 1024


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename.

    Uses Python's built-in mimetypes module to guess MIME type
    from filename extension.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def sanitize_filename(filename: str) -> str:
    """Make a filename safe to embed in a storage path.

    Runs of whitespace and path separators become a single underscore.

    Args:
        filename: Original filename (e.g., 'my report.pdf').

    Returns:
        Sanitized filename (e.g., 'my_report.pdf').
    """
    return _UNSAFE_NAME_CHARS.sub('_', filename.strip())


def owner_prefix(owner_id: str) -> str:
    """Get the storage prefix all blobs of an owner live under.

    Args:
        owner_id: Owner identifier.

    Returns:
        Prefix with trailing slash (e.g., 'users/u1/').
    """
    return f'{_USERS_ROOT}/{owner_id}/'


def build_storage_path(
    owner_id: str,
    filename: str,
    uploaded_at: datetime,
) -> str:
    """Build the blob path for a new upload.

    Example: ('u1', 'my report.pdf', 2024-01-01T00:00Z)
        -> 'users/u1/1704067200000_my_report.pdf'

    Args:
        owner_id: Owner identifier.
        filename: Original filename.
        uploaded_at: Upload time, encoded as epoch milliseconds.

    Returns:
        Storage path for the blob.
    """
    epoch_millis = int(uploaded_at.timestamp() * 1000)
    return '{prefix}{millis}_{name}'.format(
        prefix=owner_prefix(owner_id),
        millis=epoch_millis,
        name=sanitize_filename(filename),
    )


def validate_storage_path(owner_id: str, storage_path: str) -> None:
    """Validate storage path follows owner isolation rules.

    Ensures the storage path lives under the owner's prefix so one owner
    can never touch another owner's blobs.

    Args:
        owner_id: Owner identifier.
        storage_path: Storage path supplied by the caller.

    Raises:
        StorageUnauthorizedError: If the path is outside the owner's prefix.
    """
    parts = PurePosixPath(storage_path).parts
    if (
        len(parts) < 3
        or parts[0] != _USERS_ROOT
        or parts[1] != owner_id
        or '..' in parts
    ):
        raise StorageUnauthorizedError(
            f'Access to {storage_path!r} is not allowed for this user',
        )


def extract_filename(storage_path: str) -> str:
    """Extract filename from storage path.

    Args:
        storage_path: Full path (e.g., 'users/u1/1704067200000_file.pdf').

    Returns:
        Filename (e.g., '1704067200000_file.pdf').
    """
    return PurePosixPath(storage_path).name


def format_file_size(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '0 Bytes', '1.5 KB', '2 MB').
    """
    if size_bytes <= 0:
        return '0 Bytes'

    value = float(size_bytes)
    unit_index = 0
    while value >= _SIZE_BASE and unit_index < len(_SIZE_UNITS) - 1:
        value /= _SIZE_BASE
        unit_index += 1

    # :g drops trailing zeros: 2.0 -> '2', 1.50 -> '1.5'
    return f'{round(value, 2):g} {_SIZE_UNITS[unit_index]}'
