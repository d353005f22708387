from .base import *  # noqa
from .base import BASE_DIR
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK
from .base import STORAGES as BASE_STORAGES

# Test settings: force SQLite so the suite runs without external services
DEBUG = False

# Use a local SQLite database for reliability and speed in tests
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",
    }
}

# Collect mail in memory so tests can assert on it
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Invoices go to memory; manifest static storage needs collectstatic, so use the plain one
STORAGES = {
    **BASE_STORAGES,
    "invoices": {"BACKEND": "django.core.files.storage.InMemoryStorage", "OPTIONS": {"base_url": "/media/invoices/"}},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

# Slightly relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {}),
    "user": "10000/min",
    "anon": "10000/min",
    "cart": "10000/min",
    "cart_write": "10000/min",
    "orders": "10000/min",
    "orders_write": "10000/min",
    "pricing": "10000/min",
    "payment_webhook": "10000/min",
}

PRICING_DEFAULT_TAX_PERCENT = 3
INVOICE_RENDER_TIMEOUT_SECONDS = 30.0
FRONTEND_URL = "https://shop.example.com"
PAYMENT_WEBHOOK_SECRET = "test-webhook-secret"
