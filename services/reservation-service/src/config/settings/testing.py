"""
Testing settings for Reservation Service.
"""

from .base import *

# Testing mode
DEBUG = False
TESTING = True

# Use in-memory SQLite for tests
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

# Faster password hashing for tests
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

# Disable migrations for faster tests
class DisableMigrations:
    def __contains__(self, item):
        return True

    def __getitem__(self, item):
        return None

MIGRATION_MODULES = DisableMigrations()

# Celery
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

# Cache
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

# Authentication
SERVICE_AUTH_TOKEN = 'test-service-token'
JWT_SETTINGS = {
    **JWT_SETTINGS,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': 'test-jwt-secret-key-with-enough-length',
    'VERIFYING_KEY': 'test-jwt-secret-key-with-enough-length',
}

# Collaborators
SERVICE_URLS = {
    'identity-service': 'http://identity.test',
    'organization-service': 'http://organization.test',
    'resource-service': 'http://resource.test',
    'payment-service': 'http://payment.test',
}

# Logging - minimal for tests
LOGGING = {
    'version': 1,
    'disable_existing_loggers': True,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
        'level': 'CRITICAL',
    },
}
