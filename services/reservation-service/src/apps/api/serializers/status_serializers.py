# services/reservation-service/src/apps/api/serializers/status_serializers.py
"""
Status Serializers
"""

from rest_framework import serializers


class StatusCreateSerializer(serializers.Serializer):
    """Serializer for creating a status."""

    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')


class StatusUpdateSerializer(serializers.Serializer):
    """Serializer for updating a status."""

    name = serializers.CharField(required=False, max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)


class StatusListQuerySerializer(serializers.Serializer):
    keyword = serializers.CharField(required=False, allow_blank=True)
    order_by = serializers.ChoiceField(choices=['name', 'created_at'], required=False)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    per_page = serializers.IntegerField(required=False, min_value=1, max_value=100, default=30)
