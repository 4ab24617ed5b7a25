"""Django settings shared by every environment.

For the full list of settings and their config, see
https://docs.djangoproject.com/en/5.2/ref/settings/
"""

from typing import Final

from server.settings.components import BASE_DIR, config

SECRET_KEY = config('DJANGO_SECRET_KEY', default='insecure-development-key')

INSTALLED_APPS: Final = (
    'django.contrib.contenttypes',

    # Our apps:
    'server.apps.files',
)

# Database
# https://docs.djangoproject.com/en/5.2/ref/settings/#databases

DATABASES = {
    'default': {
        'ENGINE': config(
            'DJANGO_DATABASE_ENGINE',
            default='django.db.backends.sqlite3',
        ),
        'NAME': config(
            'DJANGO_DATABASE_NAME',
            default=str(BASE_DIR.joinpath('db.sqlite3')),
        ),
        'USER': config('DJANGO_DATABASE_USER', default=''),
        'PASSWORD': config('DJANGO_DATABASE_PASSWORD', default=''),
        'HOST': config('DJANGO_DATABASE_HOST', default=''),
        'PORT': config('DJANGO_DATABASE_PORT', default=''),
    },
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Internationalization
# https://docs.djangoproject.com/en/5.2/topics/i18n/

LANGUAGE_CODE = 'en-us'

USE_I18N = True

TIME_ZONE = 'UTC'
USE_TZ = True
