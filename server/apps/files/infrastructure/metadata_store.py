"""Metadata store adapter on top of the Django ORM.

Holds file records keyed by (owner_id, file_id) and accounts keyed by
owner_id. Database failures are translated into the files app error
taxonomy.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import final

from django.db import (
    DatabaseError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    transaction,
)
from django.db.models import Sum

from server.apps.files.exceptions import (
    AccountAlreadyExistsError,
    FileServiceError,
    NetworkError,
    NotFoundError,
    UnknownStorageError,
)
from server.apps.files.models import Account, FileRecord

logger = logging.getLogger(__name__)

_SHARE_FIELDS = ('is_shared', 'share_token', 'share_expiry')


@contextmanager
def _translated_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except FileServiceError:
        raise
    except (OperationalError, InterfaceError) as error:
        logger.warning('Metadata %s failed: %s', operation, error)
        raise NetworkError(
            f'Failed to {operation}: metadata store unavailable',
        ) from error
    except DatabaseError as error:
        logger.warning('Metadata %s failed: %s', operation, error)
        raise UnknownStorageError(f'Failed to {operation}: {error}') from error


@final
class MetadataStore:
    """Document-style access to file records and accounts."""

    # File records

    def create_file(  # noqa: WPS211
        self,
        owner_id: str,
        name: str,
        size: int,
        mime_type: str,
        uploaded_at: datetime,
        storage_path: str,
        download_url: str = '',
    ) -> FileRecord:
        """Persist a new, private file record.

        Returns:
            Created FileRecord.
        """
        with _translated_errors('save file metadata'), transaction.atomic():
            return FileRecord.objects.create(
                owner_id=owner_id,
                name=name,
                size=size,
                mime_type=mime_type,
                uploaded_at=uploaded_at,
                storage_path=storage_path,
                download_url=download_url,
                is_shared=False,
            )

    def list_files(self, owner_id: str) -> list[FileRecord]:
        """List all file records of an owner in natural store order."""
        with _translated_errors('load files'):
            return list(FileRecord.objects.filter(owner_id=owner_id))

    def get_file(self, owner_id: str, file_id: str) -> FileRecord:
        """Get one file record of an owner.

        Raises:
            NotFoundError: If the owner has no such file.
        """
        with _translated_errors('load file'):
            try:
                return FileRecord.objects.get(owner_id=owner_id, id=file_id)
            except FileRecord.DoesNotExist as error:
                raise NotFoundError(f'File {file_id} not found') from error

    def delete_file(self, owner_id: str, file_id: str) -> bool:
        """Delete a file record; deleting a missing record is a no-op.

        Returns:
            True if a record was removed.
        """
        with _translated_errors('delete file metadata'):
            deleted, _ = FileRecord.objects.filter(
                owner_id=owner_id,
                id=file_id,
            ).delete()
        return deleted > 0

    def mark_shared(
        self,
        owner_id: str,
        file_id: str,
        token: str,
        expiry: datetime,
    ) -> FileRecord:
        """Bind a share token and expiry to a file record.

        Raises:
            NotFoundError: If the owner has no such file.
        """
        file_record = self.get_file(owner_id, file_id)
        file_record.is_shared = True
        file_record.share_token = token
        file_record.share_expiry = expiry
        with _translated_errors('update share settings'):
            file_record.save(update_fields=list(_SHARE_FIELDS))
        return file_record

    def find_by_share_token(self, token: str) -> FileRecord | None:
        """Owner-independent lookup of a shared file by its token."""
        with _translated_errors('resolve share link'):
            return FileRecord.objects.filter(share_token=token).first()

    def sum_file_sizes(self, owner_id: str) -> int:
        """Sum the sizes of every file record of an owner."""
        with _translated_errors('calculate storage used'):
            return FileRecord.objects.filter(owner_id=owner_id).aggregate(
                total=Sum('size'),
            )['total'] or 0

    # Accounts

    def create_account(self, account: Account) -> Account:
        """Insert a new account.

        Raises:
            AccountAlreadyExistsError: If the owner already has an account.
        """
        with _translated_errors('create account'):
            try:
                with transaction.atomic():
                    account.save(force_insert=True)
            except IntegrityError as error:
                raise AccountAlreadyExistsError(
                    f'Account {account.id} already exists',
                ) from error
        return account

    def get_account(self, owner_id: str) -> Account:
        """Get an account.

        Raises:
            NotFoundError: If the owner has no account.
        """
        with _translated_errors('load account'):
            try:
                return Account.objects.get(id=owner_id)
            except Account.DoesNotExist as error:
                raise NotFoundError(f'Account {owner_id} not found') from error

    def list_account_ids(self) -> list[str]:
        """List the ids of all accounts."""
        with _translated_errors('load accounts'):
            return list(
                Account.objects.order_by('id').values_list('id', flat=True),
            )

    def update_account(self, account: Account, *fields: str) -> Account:
        """Persist the given fields of an account."""
        with _translated_errors('update account'):
            account.save(update_fields=list(fields))
        return account

    def delete_account(self, owner_id: str) -> bool:
        """Delete an account; deleting a missing account is a no-op.

        Returns:
            True if an account was removed.
        """
        with _translated_errors('delete account'):
            deleted, _ = Account.objects.filter(id=owner_id).delete()
        return deleted > 0
