"""Celery application: blast expiry, periodic sweeps, SLA checks and GPS cleanup."""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'app_backend.settings')

app = Celery('app_backend')

# All CELERY_* keys in Django settings configure the app (broker, beat schedule...)
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
