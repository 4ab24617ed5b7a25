"""Management command to recompute cached storage usage of accounts."""

import logging
from typing import Any

from django.core.management.base import BaseCommand

from server.apps.files.exceptions import FileServiceError
from server.apps.files.infrastructure.metadata_store import MetadataStore
from server.apps.files.logic.quota_operations import QuotaAccountant

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Rebuild Account.storage_used from file records."""

    help = 'Recompute storage used for one or all accounts'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--owner',
            help='Only recompute this owner (default: every account)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without writing',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the recompute command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        metadata_store = MetadataStore()
        accountant = QuotaAccountant(metadata_store)

        if options['owner']:
            owner_ids = [options['owner']]
        else:
            owner_ids = metadata_store.list_account_ids()

        drifted = 0
        failed = 0

        for owner_id in owner_ids:
            try:
                stored = metadata_store.get_account(owner_id).storage_used
                if dry_run:
                    actual = metadata_store.sum_file_sizes(owner_id)
                else:
                    actual = accountant.recompute_storage_used(owner_id)
            except FileServiceError as exc:
                self.stderr.write(f'Failed to recompute {owner_id}: {exc}')
                logger.exception('Failed to recompute storage: %s', owner_id)
                failed += 1
                continue

            if stored != actual:
                drifted += 1
                prefix = 'Would fix' if dry_run else 'Fixed'
                self.stdout.write(f'{prefix} {owner_id}: {stored} -> {actual}')

        summary = (
            f'Checked {len(owner_ids)} accounts: '
            f'{drifted} drifted, {failed} failed'
        )
        self.stdout.write(self.style.SUCCESS(summary))
