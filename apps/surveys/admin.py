from django.contrib import admin
from .models import Survey, SurveyInvitation


@admin.register(Survey)
class SurveyAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "title", "status", "definition_version")
    list_filter = ("status",)


@admin.register(SurveyInvitation)
class SurveyInvitationAdmin(admin.ModelAdmin):
    list_display = ("id", "email", "survey", "participant_type", "sent_at", "opened_at", "responded_at", "expires_at")
    list_filter = ("participant_type", "survey")
    search_fields = ("email",)
    exclude = ("token",)
