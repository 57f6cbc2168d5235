from django.urls import path
from .views import ResponseListView, ResponseDetailView

urlpatterns = [
    path("", ResponseListView.as_view(), name="response-list"),
    path("<int:response_id>/", ResponseDetailView.as_view(), name="response-detail"),
]
