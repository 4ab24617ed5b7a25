"""Main settings file.

SECURITY WARNING: don't run with debug turned on in production!

Settings are split into components (shared by every environment) and
environments (development, production) selected by ``DJANGO_ENV``.
"""

from os import environ

from split_settings.tools import include, optional

# Managing environment via `DJANGO_ENV` variable:
environ.setdefault('DJANGO_ENV', 'development')
_ENV = environ['DJANGO_ENV']

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/files.py',
    # Select the right env:
    'environments/{0}.py'.format(_ENV),
    # Optionally override some settings:
    optional('environments/local.py'),
)

# Include settings:
include(*_base_settings)
