"""Composition of the files app components.

Store clients are built once here and passed into every component that
needs them, instead of living in module-level globals.
"""

from dataclasses import dataclass

from django.conf import settings
from django.core.files.storage import Storage, storages

from server.apps.files.infrastructure.blob_store import BlobStore
from server.apps.files.infrastructure.metadata_store import MetadataStore
from server.apps.files.logic.account_operations import AccountService
from server.apps.files.logic.file_operations import FileService
from server.apps.files.logic.quota_operations import QuotaAccountant
from server.apps.files.logic.share_operations import ShareTokenIssuer


@dataclass(frozen=True, slots=True)
class FileServices:
    """Wired components of the files app."""

    blob_store: BlobStore
    metadata_store: MetadataStore
    quota_accountant: QuotaAccountant
    share_issuer: ShareTokenIssuer
    files: FileService
    accounts: AccountService


def build_services(
    storage: Storage | None = None,
    share_origin: str | None = None,
    enforce_plan_limit: bool | None = None,
) -> FileServices:
    """Build the files app components.

    Args:
        storage: Blob storage backend. Defaults to a fresh instance of the
            ``STORAGES['default']`` backend.
        share_origin: Origin for share URLs. Defaults to
            ``settings.FILES_SHARE_ORIGIN``.
        enforce_plan_limit: Defaults to ``settings.FILES_ENFORCE_PLAN_LIMIT``.

    Returns:
        FileServices with every component wired.
    """
    if storage is None:
        storage = storages.create_storage(storages.backends['default'])
    if share_origin is None:
        share_origin = settings.FILES_SHARE_ORIGIN
    if enforce_plan_limit is None:
        enforce_plan_limit = getattr(settings, 'FILES_ENFORCE_PLAN_LIMIT', False)

    blob_store = BlobStore(storage)
    metadata_store = MetadataStore()
    quota_accountant = QuotaAccountant(metadata_store)
    share_issuer = ShareTokenIssuer(metadata_store, share_origin)
    file_service = FileService(
        blob_store,
        metadata_store,
        quota_accountant,
        share_issuer,
        enforce_plan_limit=enforce_plan_limit,
    )
    return FileServices(
        blob_store=blob_store,
        metadata_store=metadata_store,
        quota_accountant=quota_accountant,
        share_issuer=share_issuer,
        files=file_service,
        accounts=AccountService(metadata_store, file_service),
    )
