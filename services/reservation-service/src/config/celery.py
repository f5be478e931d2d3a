# services/reservation-service/src/config/celery.py
"""
Celery application for the Reservation Service.

Settings are read from Django settings under the ``CELERY_`` namespace;
tasks are discovered from installed apps.
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.base')

app = Celery('reservation_service')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
