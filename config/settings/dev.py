from decouple import config as _config

from .base import *  # noqa
from .base import LOGGING as BASE_LOGGING

DEBUG = True

# In dev, allow the browsable API and relaxed CORS
CORS_ALLOW_ALL_ORIGINS = True

# Email backend for dev
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

# Optional Redis cache for local parity

_REDIS_URL = _config("REDIS_URL", default="")
if _REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": _REDIS_URL,
        }
    }
    SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"

# Verbose app logs while developing; pricing gaps show up immediately
LOGGING = {
    **BASE_LOGGING,
    "loggers": {"luxejewels": {"handlers": ["console"], "level": "DEBUG", "propagate": False}},
}
