from django.urls import path

from . import views

urlpatterns = [
    path('profiles/', views.ProfileListView.as_view(), name='profiles'),

    path('subjects/<uuid:subject_id>/readings/', views.SubjectReadingsView.as_view(), name='subject-readings'),
    path('subjects/<uuid:subject_id>/stats/', views.SubjectStatsView.as_view(), name='subject-stats'),
    path('subjects/<uuid:subject_id>/alerts/', views.SubjectAlertsView.as_view(), name='subject-alerts'),
    path('subjects/<uuid:subject_id>/alerts/read/', views.AlertsReadView.as_view(), name='subject-alerts-read'),
    path('subjects/<uuid:subject_id>/alerts/sos/', views.ManualAlertView.as_view(), name='subject-sos'),
    path('subjects/<uuid:subject_id>/guardians/', views.GuardianListView.as_view(), name='subject-guardians'),
    path('guardians/<uuid:guardian_id>/', views.GuardianDetailView.as_view(), name='guardian-detail'),

    path('caretakers/<uuid:caretaker_id>/assignments/', views.CaretakerAssignmentsView.as_view(),
         name='caretaker-assignments'),
    path('caretakers/<uuid:caretaker_id>/assignments/<uuid:subject_id>/', views.CaretakerAssignmentDetailView.as_view(),
         name='caretaker-assignment-detail'),
    path('caretakers/<uuid:caretaker_id>/unread/', views.CaretakerUnreadView.as_view(), name='caretaker-unread'),
    path('caretakers/<uuid:caretaker_id>/subjects/<uuid:subject_id>/readings/', views.SubjectReadingsView.as_view(
        http_method_names=['get']), name='caretaker-subject-readings'),
    path('caretakers/<uuid:caretaker_id>/subjects/<uuid:subject_id>/stats/', views.SubjectStatsView.as_view(),
         name='caretaker-subject-stats'),
    path('caretakers/<uuid:caretaker_id>/subjects/<uuid:subject_id>/alerts/', views.SubjectAlertsView.as_view(),
         name='caretaker-subject-alerts'),
    path('caretakers/<uuid:caretaker_id>/subjects/<uuid:subject_id>/alerts/read/', views.AlertsReadView.as_view(),
         name='caretaker-subject-alerts-read'),

    path('assistant/chat/', views.AssistantChatView.as_view(), name='assistant-chat'),
    path('assistant/symptoms/', views.SymptomCheckView.as_view(), name='assistant-symptoms'),
]
