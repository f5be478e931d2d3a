# services/reservation-service/src/apps/core/filters.py
"""
Reservation Filters

Django Filter classes for reservation listings. The API validates query
parameters with them and the query service filters through them.
"""

import django_filters
from django.db.models import Q

from apps.core.models import Reservation


class ReservationFilter(django_filters.FilterSet):
    """Filter for reservation listings."""

    keyword = django_filters.CharFilter(method='filter_keyword')

    user_id = django_filters.UUIDFilter()
    organization_id = django_filters.UUIDFilter()

    # Date filters
    start_date = django_filters.DateFilter(
        field_name='start_date',
        lookup_expr='gte'
    )
    end_date = django_filters.DateFilter(
        field_name='end_date',
        lookup_expr='lte'
    )

    status = django_filters.CharFilter(
        field_name='status__name',
        lookup_expr='iexact'
    )

    class Meta:
        model = Reservation
        fields = [
            'keyword', 'user_id', 'organization_id',
            'start_date', 'end_date', 'status',
        ]

    def filter_keyword(self, queryset, name, value):
        """Code or status name contains the keyword."""
        return queryset.filter(
            Q(code__icontains=value) | Q(status__name__icontains=value)
        )

    def cleaned_filters(self) -> dict:
        """Non-empty cleaned values, to hand to the query service."""
        return {
            name: value
            for name, value in self.form.cleaned_data.items()
            if value not in (None, '')
        }
