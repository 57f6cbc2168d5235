from django.urls import path
from .views import SurveyListView, InvitationListView, InvitationSendView, InvitationExportView

urlpatterns = [
    path("", SurveyListView.as_view(), name="survey-list"),
    path("invitations/", InvitationListView.as_view(), name="invitation-list"),
    path("invitations/send/", InvitationSendView.as_view(), name="invitation-send"),
    path("invitations/export/", InvitationExportView.as_view(), name="invitation-export"),
]
