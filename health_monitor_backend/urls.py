from django.urls import include, path

urlpatterns = [
    path('api/', include('health_monitor_api.urls')),
]
