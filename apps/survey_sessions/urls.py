from django.urls import path
from .views import SessionDetailView, SessionAdvanceView, SessionSubmitView

urlpatterns = [
    path("<str:token>/", SessionDetailView.as_view(), name="session-detail"),
    path("<str:token>/advance/", SessionAdvanceView.as_view(), name="session-advance"),
    path("<str:token>/submit/", SessionSubmitView.as_view(), name="session-submit"),
]
