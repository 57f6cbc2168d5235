from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone
from apps.core.models import TimeStampedModel
from apps.contacts.models import Contact
from auditlog.registry import auditlog

from .catalog import DEFAULT_VERSION, SurveyDefinition, get_definition


class SurveyStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    ACTIVE = "active", "Active"
    CLOSED = "closed", "Closed"


class ParticipantType(models.TextChoices):
    DELEGATE = "delegate", "Delegate"
    EXHIBITOR = "exhibitor", "Exhibitor"


class Survey(TimeStampedModel):
    code = models.SlugField(max_length=128, unique=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=16, choices=SurveyStatus.choices, default=SurveyStatus.DRAFT)
    definition_version = models.CharField(max_length=64, default=DEFAULT_VERSION)

    class Meta:
        indexes = [
            models.Index(fields=["status"]),
        ]
        constraints = [
            # Only one survey may be distributed at a time
            models.UniqueConstraint(
                fields=["status"],
                condition=Q(status="active"),
                name="uniq_single_active_survey",
            ),
        ]

    def __str__(self):
        return f"{self.code}"

    @property
    def definition(self) -> SurveyDefinition:
        return get_definition(self.definition_version)

    @property
    def is_active(self) -> bool:
        return self.status == SurveyStatus.ACTIVE

    def clean(self):
        super().clean()
        if self.status == SurveyStatus.ACTIVE:
            others = Survey.objects.filter(status=SurveyStatus.ACTIVE).exclude(pk=self.pk)
            if others.exists():
                raise DjangoValidationError({"status": "Another survey is already active."})


class SurveyInvitation(TimeStampedModel):
    survey = models.ForeignKey(Survey, on_delete=models.CASCADE, related_name="invitations")
    contact = models.ForeignKey(Contact, on_delete=models.SET_NULL, null=True, blank=True, related_name="invitations")
    email = models.EmailField()
    participant_type = models.CharField(max_length=16, choices=ParticipantType.choices)
    token = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField()
    sent_at = models.DateTimeField(blank=True, null=True)
    opened_at = models.DateTimeField(blank=True, null=True)
    responded_at = models.DateTimeField(blank=True, null=True)
    current_page = models.IntegerField(blank=True, null=True)
    partial_responses = models.JSONField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=["survey", "contact"], name="idx_inv_survey_contact"),
            models.Index(fields=["survey", "responded_at"], name="idx_inv_survey_responded"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(responded_at__isnull=True) | Q(current_page__isnull=True, partial_responses__isnull=True),
                name="inv_responded_clears_progress",
            ),
        ]

    def __str__(self):
        state = "responded" if self.responded_at else "pending"
        return f"inv:{self.email} -> {self.survey_id} ({state})"

    def is_expired(self, now=None) -> bool:
        return self.expires_at < (now or timezone.now())

    @property
    def survey_url(self) -> str:
        from django.conf import settings

        return f"{settings.SITE_URL.rstrip('/')}/s/{self.token}"


# Register audit logging for survey models
auditlog.register(Survey)
auditlog.register(SurveyInvitation, exclude_fields=["token", "partial_responses"])
