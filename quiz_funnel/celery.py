import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "quiz_funnel.settings")

app = Celery("quiz_funnel")

app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
