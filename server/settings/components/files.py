"""File service settings."""

from server.settings.components import config

# Origin used to build public share URLs: {origin}/share/{token}
FILES_SHARE_ORIGIN = config(
    'FILES_SHARE_ORIGIN',
    default='http://localhost:8080',
)

# Reject uploads that would push an account over its plan limit.
# Off by default: only the absolute per-file cap is enforced.
FILES_ENFORCE_PLAN_LIMIT = config(
    'FILES_ENFORCE_PLAN_LIMIT',
    cast=bool,
    default=False,
)
