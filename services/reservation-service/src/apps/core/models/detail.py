# services/reservation-service/src/apps/core/models/detail.py
"""
Detail Model

Customer and occupancy information, one row per reservation.
"""

from decimal import Decimal

from django.db import models

from shared.common.mixins import TrackedModel


class Detail(TrackedModel):
    """Customer identity, occupancy and pricing breakdown of a reservation."""

    reservation = models.OneToOneField(
        'core.Reservation',
        on_delete=models.CASCADE,
        related_name='detail'
    )

    # Customer
    name = models.CharField(max_length=255, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    phone = models.CharField(max_length=50, blank=True, default='')

    # Occupancy
    number_of_adults = models.PositiveIntegerField(default=0)
    number_of_children = models.PositiveIntegerField(default=0)
    number_of_infants = models.PositiveIntegerField(default=0)
    number_of_pets = models.PositiveIntegerField(default=0)
    resource_quantity = models.PositiveIntegerField(default=0)

    note = models.TextField(blank=True, default='')

    # Pricing breakdown
    original_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    discount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    currency = models.CharField(max_length=3, blank=True, default='')

    class Meta:
        db_table = 'details'
        indexes = [
            models.Index(fields=['name']),
            models.Index(fields=['phone']),
        ]

    def __str__(self):
        return f"{self.name} ({self.reservation_id})"

    def append_note(self, text: str):
        self.note = f"{self.note}\n{text}" if self.note else text
