"""Business logic layer for files app.

This package contains all business logic of the file service:
- File upload, listing, download and delete (file_operations)
- Storage usage accounting (quota_operations)
- Expiring public share links (share_operations)
- Account provisioning (account_operations)
- Per-owner change subscriptions (subscriptions)

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
