# services/reservation-service/src/apps/core/models/reservation.py
"""
Reservation Model

Aggregate root: a booking of one or more external resources for a
date range, on behalf of a user or an organization.
"""

from decimal import Decimal

from django.db import models

from shared.common.mixins import TrackedModel


class Reservation(TrackedModel):
    """
    Reservation of resources between ``start_date`` and ``end_date``.

    Dates are date-only (UTC). The detail record and resource links are
    written together with the reservation by the lifecycle service.
    """

    class Source(models.TextChoices):
        WEB = 'Web', 'Web'
        MOBILE = 'Mobile', 'Mobile'
        ORGANIZATION = 'Organization', 'Organization'

    user_id = models.UUIDField(blank=True, null=True, db_index=True)
    organization_id = models.UUIDField(db_index=True)

    status = models.ForeignKey(
        'core.Status',
        on_delete=models.PROTECT,
        related_name='reservations'
    )

    code = models.CharField(max_length=20, unique=True, db_index=True)
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )

    start_date = models.DateField(db_index=True)
    end_date = models.DateField()

    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.WEB
    )

    class Meta:
        db_table = 'reservations'
        ordering = ['start_date']
        indexes = [
            models.Index(fields=['organization_id', 'start_date']),
            models.Index(fields=['user_id', 'start_date']),
            models.Index(fields=['start_date', 'end_date']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F('start_date')),
                name='reservation_end_after_start'
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name='reservation_total_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.code}: {self.start_date:%Y-%m-%d} - {self.end_date:%Y-%m-%d}"

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    @property
    def status_name(self) -> str:
        return self.status.name

    @property
    def active_links(self):
        return self.resource_links.filter(is_deleted=False)

    @property
    def resource_ids(self) -> list:
        return [link.resource_id for link in self.active_links.order_by('created_at')]

    def can_modify(self, user_id) -> bool:
        """Only the owning user may modify a reservation."""
        return self.user_id is not None and str(self.user_id) == str(user_id)
