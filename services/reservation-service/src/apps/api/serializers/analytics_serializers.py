# services/reservation-service/src/apps/api/serializers/analytics_serializers.py
"""
Analytics Serializers

Query parameter parsing for statistics, client search and reports.
"""

from rest_framework import serializers


class DateRangeQuerySerializer(serializers.Serializer):
    """Organization and inclusive date range."""

    organization_id = serializers.UUIDField(required=False)
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):
        start_date = attrs.get('start_date')
        end_date = attrs.get('end_date')
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({'end_date': 'end_date cannot be before start_date'})
        return attrs


class OptionalDateRangeQuerySerializer(DateRangeQuerySerializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)


class ClientSearchQuerySerializer(serializers.Serializer):
    organization_id = serializers.UUIDField(required=False)
    query = serializers.CharField(max_length=255)
    max_results = serializers.IntegerField(required=False, min_value=1, max_value=100, default=10)
