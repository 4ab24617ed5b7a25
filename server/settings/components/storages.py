"""Django storage configuration for the S3-compatible blob store.

This module configures django-storages to work with:
- MinIO for local development
- Any S3-compatible bucket (AWS S3, Cloudflare R2) in production

Every backend uses the same S3Storage subclass.
"""

from typing import Any, Final

from server.settings.components import config

# Storage configuration dictionary
# Uses S3-compatible storage for user files
STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'server.apps.files.infrastructure.storage.FileStorage',
        'OPTIONS': {
            'bucket_name': config(
                'AWS_STORAGE_BUCKET_NAME',
                default='cloudvault',
            ),
            'access_key': config('AWS_ACCESS_KEY_ID', default='minioadmin'),
            'secret_key': config(
                'AWS_SECRET_ACCESS_KEY',
                default='minioadmin',
            ),
            'endpoint_url': config(
                'AWS_S3_ENDPOINT_URL',
                default=None,
            ),
            'region_name': config(
                'AWS_S3_REGION_NAME',
                default='us-east-1',
            ),
            'file_overwrite': False,  # Blob paths are never reused
            'default_acl': None,  # Inherit bucket ACL
        },
    },
}
