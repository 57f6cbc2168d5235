from rest_framework import serializers


class AdvanceSerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=0)
    answers = serializers.DictField(required=False, default=dict)


class SubmitSerializer(serializers.Serializer):
    answers = serializers.DictField(required=False, default=dict)
