"""Exceptions for files app.

Every error raised by the file, quota, share and account operations is a
``FileServiceError``. Store-level failures are translated into this
taxonomy by the infrastructure adapters, with the original exception
chained as ``__cause__``.
"""


class FileServiceError(Exception):
    """Base class for all file service errors."""


class AuthenticationRequiredError(FileServiceError):
    """Raised when the owner id is missing or blank."""

    def __init__(self, message: str = 'User not authenticated') -> None:
        """Initialize AuthenticationRequiredError.

        Args:
            message: User-facing message.
        """
        super().__init__(message)


class FileValidationError(FileServiceError):
    """Raised when input fails validation before any I/O."""


class EmptyFileError(FileValidationError):
    """Raised when an upload has no content."""

    def __init__(self) -> None:
        """Initialize EmptyFileError."""
        super().__init__('File is empty')


class FileTooLargeError(FileValidationError):
    """Raised when an upload exceeds the per-file size limit."""

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        """Initialize FileTooLargeError.

        Args:
            size_bytes: Size of the rejected upload.
            max_bytes: Maximum allowed size.
        """
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f'File size {size_bytes} exceeds maximum limit of '
            f'{max_bytes} bytes',
        )


class InvalidExpiryError(FileValidationError):
    """Raised when a share link expiry is not a positive number of hours."""


class QuotaExceededError(FileServiceError):
    """Raised when upload would exceed the account's plan limit."""

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes

        available = quota_bytes - used_bytes
        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {available} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
        )


class StorageUnauthorizedError(FileServiceError):
    """Raised on permission or configuration problems at the blob store."""


class StorageTimeoutError(FileServiceError):
    """Raised when the blob store does not answer in time."""


class NetworkError(FileServiceError):
    """Raised when a store cannot be reached."""


class NotFoundError(FileServiceError):
    """Raised when a blob, file record or account does not exist."""


class ShareLinkNotFoundError(NotFoundError):
    """Raised when no file is shared under the given token."""


class ShareLinkExpiredError(FileServiceError):
    """Raised when a share token is past its expiry."""


class AccountAlreadyExistsError(FileServiceError):
    """Raised when registering an owner that already has an account."""


class UnknownStorageError(FileServiceError):
    """Raised for store failures that match no other category.

    The underlying message is preserved for diagnostics.
    """
