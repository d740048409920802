# routing.py
from django.urls import re_path

from . import consumers

UUID = r'[0-9a-fA-F-]{36}'

websocket_urlpatterns = [
    re_path(rf'ws/subjects/(?P<subject_id>{UUID})/readings/$', consumers.SubjectReadingsConsumer.as_asgi()),
    re_path(rf'ws/subjects/(?P<subject_id>{UUID})/alerts/$', consumers.SubjectAlertsConsumer.as_asgi()),
    re_path(rf'ws/subjects/(?P<subject_id>{UUID})/voice/$', consumers.VoiceCommandConsumer.as_asgi()),
    re_path(rf'ws/caretakers/(?P<caretaker_id>{UUID})/alerts/$', consumers.CaretakerAlertsConsumer.as_asgi()),
]
