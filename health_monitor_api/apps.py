from django.apps import AppConfig


class HealthMonitorApiConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'health_monitor_api'
