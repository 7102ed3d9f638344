"""
Night audit Django adapter URL routing.
"""

from django.urls import path

from adapters.django_api import views


urlpatterns = [
    path("night-audit/status", views.status_view),
    path("night-audit/preview", views.preview_view),
    path("night-audit/no-shows", views.no_shows_view),
    path("night-audit/records", views.records_view),
    path("night-audit/close", views.close_day_view),
    path("night-audit/reopen", views.reopen_day_view),
]
