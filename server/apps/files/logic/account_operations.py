"""Business logic for storage accounts."""

import logging
from typing import final

from server.apps.files.infrastructure.metadata_store import MetadataStore
from server.apps.files.logic.file_operations import FileService
from server.apps.files.logic.share_operations import generate_share_token
from server.apps.files.logic.validation import validate_owner_id
from server.apps.files.models import Account, Plan, storage_limit_for

logger = logging.getLogger(__name__)


@final
class AccountService:
    """Provisions and removes accounts of authenticated owners."""

    def __init__(
        self,
        metadata_store: MetadataStore,
        file_service: FileService,
    ) -> None:
        """Initialize AccountService.

        Args:
            metadata_store: Store holding accounts.
            file_service: Used to remove an owner's files on deletion.
        """
        self._metadata = metadata_store
        self._files = file_service

    def register_account(
        self,
        owner_id: str,
        email: str,
        plan: str = Plan.FREE,
    ) -> Account:
        """Create the account of a newly registered owner.

        Args:
            owner_id: Owner id from the identity provider.
            email: Owner's email address.
            plan: Storage plan, 'free' by default.

        Returns:
            Created Account with no storage used.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            AccountAlreadyExistsError: If the owner already has an account.
            ValueError: If plan is unknown.
        """
        validate_owner_id(owner_id)
        account = Account(
            id=owner_id,
            email=email,
            plan=Plan(plan),
            storage_limit=storage_limit_for(plan),
            storage_used=0,
            share_token=generate_share_token(),
        )
        self._metadata.create_account(account)
        logger.info(
            'Created account for owner %s (%s plan, %d bytes)',
            owner_id,
            account.plan,
            account.storage_limit,
        )
        return account

    def get_account(self, owner_id: str) -> Account:
        """Get an owner's account.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            NotFoundError: If the owner has no account.
        """
        validate_owner_id(owner_id)
        return self._metadata.get_account(owner_id)

    def regenerate_share_token(self, owner_id: str) -> str:
        """Replace the account-level share token.

        Args:
            owner_id: Owner of the account.

        Returns:
            The new token.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            NotFoundError: If the owner has no account.
        """
        account = self.get_account(owner_id)
        account.share_token = generate_share_token()
        self._metadata.update_account(account, 'share_token')
        logger.info('Regenerated account share token for owner %s', owner_id)
        return account.share_token

    def delete_account(self, owner_id: str) -> None:
        """Delete an owner's files, then the account itself.

        Stops at the first file that cannot be deleted, leaving the
        account in place so the deletion can be retried.

        Args:
            owner_id: Owner of the account.

        Raises:
            AuthenticationRequiredError: If owner_id is blank.
            FileServiceError: If a file or the account cannot be deleted.
        """
        validate_owner_id(owner_id)

        file_records = self._files.list_files(owner_id)
        for file_record in file_records:
            self._files.delete_file(
                owner_id,
                file_record.id,
                file_record.storage_path,
            )

        self._metadata.delete_account(owner_id)
        logger.info(
            'Account deleted for owner %s (%d files removed)',
            owner_id,
            len(file_records),
        )
