from django.db import models
from apps.core.models import TimeStampedModel
from auditlog.registry import auditlog
from django.contrib.auth.models import User, Permission


class Role(TimeStampedModel):
    name = models.CharField(max_length=128, unique=True)
    description = models.TextField(blank=True, null=True)
    permissions = models.ManyToManyField(Permission, related_name="custom_roles", blank=True)
    users = models.ManyToManyField(User, related_name="custom_roles", blank=True)

    def __str__(self):
        return self.name


# Register models for automatic audit logging
auditlog.register(Role)
