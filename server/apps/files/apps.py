"""Django app configuration for files app."""

from django.apps import AppConfig


class FilesConfig(AppConfig):
    """Owner files, accounts and share links."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.files'
    verbose_name = 'File storage'
