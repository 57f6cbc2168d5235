from rest_framework import serializers
from .models import SurveyResponse


class SurveyResponseSerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()
    email = serializers.SerializerMethodField()

    class Meta:
        model = SurveyResponse
        fields = ["id", "survey", "contact", "name", "email", "participant_type", "responses", "completed_at"]

    def get_name(self, obj):
        return obj.contact.display_name if obj.contact else None

    def get_email(self, obj):
        if obj.contact and obj.contact.email:
            return obj.contact.email
        return obj.invitation.email if obj.invitation_id else None
