"""
Celery configuration for the billing service.

Celery runs the scheduled maintenance work of the service:
- Pruning of processed webhook event records past the retention window

Webhook processing itself stays synchronous inside the request so that a
failure surfaces as a 5xx response and the provider redelivers the event.

The schedule lives in the database (django-celery-beat) and is created by a
billing data migration. Tasks are auto-discovered from all installed apps.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
