# services/reservation-service/src/apps/core/models/reservation_resource.py
"""
Reservation Resource Model

Link between a reservation and an external resource identifier.
Links are soft-deleted individually so a reservation's resource set can
be replaced without touching the reservation row.
"""

from decimal import Decimal

from django.db import models

from shared.common.mixins import TrackedModel


class ReservationResource(TrackedModel):
    """An external resource claimed by a reservation."""

    reservation = models.ForeignKey(
        'core.Reservation',
        on_delete=models.CASCADE,
        related_name='resource_links'
    )
    resource_id = models.UUIDField(db_index=True)
    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )

    class Meta:
        db_table = 'reservation_resources'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['resource_id', 'is_deleted']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['reservation', 'resource_id'],
                condition=models.Q(is_deleted=False),
                name='unique_live_reservation_resource'
            ),
        ]

    def __str__(self):
        return f"{self.reservation_id} -> {self.resource_id}"
