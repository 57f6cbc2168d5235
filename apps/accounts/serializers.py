from rest_framework import serializers
from django.contrib.auth.models import User


class PrincipalSerializer(serializers.ModelSerializer):
    roles = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "roles"]

    def get_roles(self, obj: User):
        return list(obj.custom_roles.order_by("name").values_list("name", flat=True))
