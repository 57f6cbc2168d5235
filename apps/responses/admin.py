from django.contrib import admin
from .models import SurveyResponse


@admin.register(SurveyResponse)
class SurveyResponseAdmin(admin.ModelAdmin):
    list_display = ("id", "survey", "contact", "participant_type", "completed_at")
    list_filter = ("participant_type", "survey")
    search_fields = ("contact__name", "contact__email")
    list_select_related = ("survey", "contact")
    readonly_fields = ("invitation", "completed_at")
