# services/reservation-service/src/apps/api/serializers/reservation_serializers.py
"""
Reservation Serializers

Request parsing for reservation operations. Business rules are applied
by the domain services, which report every violation at once.
"""

from rest_framework import serializers

from apps.core.models import Reservation


class ResourceEntrySerializer(serializers.Serializer):
    """One requested resource, optionally priced for a single date."""

    resource_id = serializers.UUIDField(required=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    quantity = serializers.IntegerField(required=False, default=1)
    date = serializers.DateField(required=False)


class OrganizationResourceEntrySerializer(ResourceEntrySerializer):
    """Resource entry that may reference the resource by slug."""

    slug = serializers.CharField(required=False, max_length=255)


class DetailInputSerializer(serializers.Serializer):
    """Customer and occupancy information."""

    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    email = serializers.CharField(required=False, allow_blank=True, max_length=254)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=50)
    number_of_adults = serializers.IntegerField(required=False)
    number_of_children = serializers.IntegerField(required=False)
    number_of_infants = serializers.IntegerField(required=False)
    number_of_pets = serializers.IntegerField(required=False)
    resource_quantity = serializers.IntegerField(required=False)
    note = serializers.CharField(required=False, allow_blank=True)
    original_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    currency = serializers.CharField(required=False, allow_blank=True, max_length=3)


class ReservationCreateSerializer(serializers.Serializer):
    """Serializer for creating a reservation on behalf of a user."""

    user_id = serializers.UUIDField(required=False)
    organization_id = serializers.UUIDField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    source = serializers.ChoiceField(
        choices=[Reservation.Source.WEB, Reservation.Source.MOBILE],
        default=Reservation.Source.WEB
    )
    resources = ResourceEntrySerializer(many=True)
    detail = DetailInputSerializer()


class OrganizationReservationCreateSerializer(serializers.Serializer):
    """Serializer for creating a reservation on behalf of an organization."""

    user_id = serializers.UUIDField(required=False, allow_null=True)
    organization_id = serializers.UUIDField()
    status_id = serializers.UUIDField(required=False, allow_null=True)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    resources = OrganizationResourceEntrySerializer(many=True)
    detail = DetailInputSerializer(required=False)


class ReservationUpdateSerializer(serializers.Serializer):
    """Serializer for updating a reservation. All fields optional."""

    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    status_id = serializers.UUIDField(required=False)
    is_active = serializers.BooleanField(required=False)
    resource_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    detail = DetailInputSerializer(required=False)


class OrganizationReservationUpdateSerializer(ReservationUpdateSerializer):
    """Organization updates never change the active flag."""

    is_active = None


class ReservationCancelSerializer(serializers.Serializer):
    """Serializer for cancelling a reservation."""

    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class ReservationTransitionSerializer(serializers.Serializer):
    """Serializer for moving a reservation to another status."""

    status = serializers.CharField(max_length=100)


class ValidateTicketSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)


class ReservationsByResourcesSerializer(serializers.Serializer):
    """Serializer for the overlapping-reservations lookup."""

    resource_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):
        if attrs['end_date'] < attrs['start_date']:
            raise serializers.ValidationError({'end_date': 'end_date cannot be before start_date'})
        return attrs
