from django.db import models
from apps.core.models import TimeStampedModel
from auditlog.registry import auditlog


class Organization(TimeStampedModel):
    name = models.CharField(max_length=255, unique=True)

    def __str__(self):
        return self.name


class Contact(TimeStampedModel):
    """An event attendee synced from the CRM; `tags` mirrors the CRM tag formula (comma-separated)."""
    name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(blank=True, null=True)
    organization = models.ForeignKey(Organization, on_delete=models.SET_NULL, null=True, blank=True, related_name="contacts")
    tags = models.TextField(blank=True, default="")

    class Meta:
        indexes = [
            models.Index(fields=["email"], name="idx_contact_email"),
        ]

    def __str__(self):
        return self.name or self.email or f"contact#{self.pk}"

    @property
    def tag_names(self) -> list[str]:
        return [t.strip().lstrip("@").strip() for t in (self.tags or "").split(",") if t.strip()]

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return "Unknown"


# Register models for automatic audit logging
auditlog.register(Organization)
auditlog.register(Contact)
