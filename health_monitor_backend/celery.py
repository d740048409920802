import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'health_monitor_backend.settings')

app = Celery('health_monitor_backend')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
