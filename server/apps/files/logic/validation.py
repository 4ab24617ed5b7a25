"""Input validation shared by file, share and account operations.

Everything here runs before any store I/O.
"""

from server.apps.files.exceptions import (
    AuthenticationRequiredError,
    EmptyFileError,
    FileTooLargeError,
    InvalidExpiryError,
)
from server.apps.files.models import MAX_FILE_SIZE


def validate_owner_id(owner_id: str | None) -> str:
    """Ensure the caller is authenticated.

    Args:
        owner_id: Owner id from the identity provider.

    Returns:
        The owner id, unchanged.

    Raises:
        AuthenticationRequiredError: If the owner id is missing or blank.
    """
    if not owner_id or not owner_id.strip():
        raise AuthenticationRequiredError()
    return owner_id


def validate_upload_size(size_bytes: int) -> None:
    """Check an upload against the absolute per-file bounds.

    Args:
        size_bytes: Declared upload size.

    Raises:
        EmptyFileError: If the size is zero or negative.
        FileTooLargeError: If the size exceeds MAX_FILE_SIZE.
    """
    if size_bytes <= 0:
        raise EmptyFileError()
    if size_bytes > MAX_FILE_SIZE:
        raise FileTooLargeError(size_bytes, MAX_FILE_SIZE)


def validate_expiry_hours(expiry_hours: int) -> None:
    """Check a share link lifetime.

    Raises:
        InvalidExpiryError: If expiry_hours is not a positive integer.
    """
    # bool is an int subclass but never a meaningful lifetime
    if (
        isinstance(expiry_hours, bool)
        or not isinstance(expiry_hours, int)
        or expiry_hours <= 0
    ):
        raise InvalidExpiryError(
            f'Expiry must be a positive number of hours, got {expiry_hours!r}',
        )
