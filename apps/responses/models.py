from django.db import models
from apps.core.models import TimeStampedModel
from apps.contacts.models import Contact
from apps.surveys.models import Survey, SurveyInvitation, ParticipantType
from auditlog.registry import auditlog


class SurveyResponse(TimeStampedModel):
    survey = models.ForeignKey(Survey, on_delete=models.CASCADE, related_name="responses")
    contact = models.ForeignKey(Contact, on_delete=models.SET_NULL, null=True, blank=True, related_name="survey_responses")
    invitation = models.ForeignKey(SurveyInvitation, on_delete=models.SET_NULL, null=True, blank=True, related_name="responses")
    participant_type = models.CharField(max_length=16, choices=ParticipantType.choices)
    # Complete answer document keyed by question id
    responses = models.JSONField(default=dict, blank=True)
    completed_at = models.DateTimeField()

    class Meta:
        indexes = [
            models.Index(fields=["survey", "-completed_at"], name="idx_response_survey_time"),
            models.Index(fields=["participant_type"], name="idx_response_ptype"),
        ]

    def __str__(self):
        return f"response#{self.id} survey#{self.survey_id}"


# Register audit logging for responses models
auditlog.register(SurveyResponse, exclude_fields=["responses"])
