from rest_framework import serializers
from .models import Survey


class SurveyListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Survey
        fields = ["id", "code", "title", "description", "status", "definition_version"]


class DistributionRowSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    email = serializers.EmailField()
    name = serializers.CharField()
    participant_type = serializers.CharField()
    sent_at = serializers.DateTimeField(allow_null=True)
    opened_at = serializers.DateTimeField(allow_null=True)
    responded_at = serializers.DateTimeField(allow_null=True)
    has_responded = serializers.BooleanField()


class SendInvitationsSerializer(serializers.Serializer):
    contact_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    subject = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    message = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    queue = serializers.BooleanField(required=False, default=False)
