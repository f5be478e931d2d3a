"""Base settings for Reservation Service."""
import os
import sys
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(BASE_DIR.parent.parent.parent))

SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'
ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', '*').split(',')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'django_filters',
    'apps.core',
    'apps.api',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'shared.common.middleware.RequestIDMiddleware',
    'shared.common.middleware.LoggingMiddleware',
]

ROOT_URLCONF = 'config.urls'
TEMPLATES = [{'BACKEND': 'django.template.backends.django.DjangoTemplates', 'DIRS': [], 'APP_DIRS': True, 'OPTIONS': {'context_processors': ['django.template.context_processors.debug', 'django.template.context_processors.request', 'django.contrib.auth.context_processors.auth', 'django.contrib.messages.context_processors.messages']}}]
WSGI_APPLICATION = 'config.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'reservation_service_db'),
        'USER': os.environ.get('DB_USER', 'reservation_service_user'),
        'PASSWORD': os.environ.get('DB_PASSWORD', 'reservation_service_password'),
        'HOST': os.environ.get('DB_HOST', 'pgbouncer'),
        'PORT': os.environ.get('DB_PORT', '6432'),
    }
}

AUTH_PASSWORD_VALIDATORS = [{'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'}]
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'shared.common.authentication.JWTAuthentication',
        'shared.common.authentication.ServiceAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.IsAuthenticated'],
    'EXCEPTION_HANDLER': 'shared.common.exceptions.custom_exception_handler',
}

CORS_ALLOW_ALL_ORIGINS = DEBUG
REDIS_URL = os.environ.get('REDIS_URL', 'redis://redis:6379/7')
CACHES = {'default': {'BACKEND': 'django_redis.cache.RedisCache', 'LOCATION': REDIS_URL}}

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TASK_ACKS_LATE = True

# Authentication
JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', SECRET_KEY)
JWT_SETTINGS = {
    'ALGORITHM': os.environ.get('JWT_ALGORITHM', 'HS256'),
    'SIGNING_KEY': JWT_SECRET_KEY,
    'VERIFYING_KEY': os.environ.get('JWT_VERIFYING_KEY', JWT_SECRET_KEY),
    'ISSUER': os.environ.get('JWT_ISSUER', 'booking-platform'),
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(os.environ.get('JWT_ACCESS_TOKEN_MINUTES', '60'))),
}
SERVICE_AUTH_TOKEN = os.environ.get('SERVICE_AUTH_TOKEN', '')

SERVICE_NAME = 'reservation-service'
SERVICE_PORT = 8020

# Collaborators
SERVICE_URLS = {
    'identity-service': os.environ.get('IDENTITY_SERVICE_URL', 'http://identity-service:8000'),
    'organization-service': os.environ.get('ORGANIZATION_SERVICE_URL', 'http://organization-service:8000'),
    'resource-service': os.environ.get('RESOURCE_SERVICE_URL', 'http://resource-service:8000'),
    'payment-service': os.environ.get('PAYMENT_SERVICE_URL', 'http://payment-service:8000'),
}
SERVICE_CLIENT_TIMEOUT = float(os.environ.get('SERVICE_CLIENT_TIMEOUT', '10.0'))
SERVICE_CLIENT_CONNECT_TIMEOUT = float(os.environ.get('SERVICE_CLIENT_CONNECT_TIMEOUT', '5.0'))

RESERVATION = {
    'CODE_PREFIX': os.environ.get('RESERVATION_CODE_PREFIX', 'ORG'),
    'CODE_LENGTH': 5,
    'CODE_MAX_ATTEMPTS': 10,
    'MAX_ADVANCE_YEARS': 2,
    'MAX_DURATION_DAYS': 30,
    'DEFAULT_PAGE_SIZE': 30,
    'MAX_PAGE_SIZE': 100,
    'DEFAULT_CURRENCY': os.environ.get('RESERVATION_DEFAULT_CURRENCY', 'EUR'),
    'CANCEL_REQUIRES_REFUND': os.environ.get('RESERVATION_CANCEL_REQUIRES_REFUND', 'True').lower() == 'true',
    # minutes
    'CACHE_TTL_DEFAULT': 1440,
    'CACHE_TTL_HALF_DAY': 720,
    'CACHE_TTL_SHORT': 60,
}

LOGGING = {'version': 1, 'disable_existing_loggers': False, 'filters': {'request_id': {'()': 'shared.common.middleware.RequestIDLogFilter'}}, 'formatters': {'json': {'()': 'pythonjsonlogger.jsonlogger.JsonFormatter', 'fmt': '%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s'}}, 'handlers': {'console': {'class': 'logging.StreamHandler', 'formatter': 'json', 'filters': ['request_id']}}, 'root': {'handlers': ['console'], 'level': 'INFO'}}
