"""Infrastructure layer for files app.

This package contains integrations with external systems:
- S3-compatible blob storage (MinIO/S3/R2) and its error translation
- The metadata store on top of the Django ORM
- Storage path and metadata helpers

Keep infrastructure concerns separate from business logic.
"""
