# services/reservation-service/src/apps/core/models/status.py
"""
Status Model

Reference table of named reservation lifecycle states. Rows are created
lazily by name; transition rules and display colors are keyed by name.
"""

from django.db import models

from shared.common.mixins import TrackedModel


class StatusName:
    """Well-known status names."""
    CREATED = 'Created'
    PENDING = 'Pending'
    CONFIRMED = 'Confirmed'
    COMPLETED = 'Completed'
    CANCELLED = 'Cancelled'
    NO_SHOW = 'No-Show'
    CHECKED_IN = 'CheckedIn'
    NOT_CHECKED_IN = 'NotCheckedIn'
    FINISHED = 'Finished'

    INITIAL = CREATED


# "Created" is the initial state and behaves like "Pending".
STATUS_TRANSITIONS = {
    StatusName.CREATED: frozenset({StatusName.CONFIRMED, StatusName.CANCELLED}),
    StatusName.PENDING: frozenset({StatusName.CONFIRMED, StatusName.CANCELLED}),
    StatusName.CONFIRMED: frozenset({
        StatusName.COMPLETED,
        StatusName.CANCELLED,
        StatusName.NO_SHOW,
    }),
    StatusName.COMPLETED: frozenset(),
    StatusName.CANCELLED: frozenset(),
    StatusName.NO_SHOW: frozenset(),
}

STATUS_COLORS = {
    StatusName.PENDING: '#E7AF21',
    StatusName.CREATED: '#50B39C',
    StatusName.NOT_CHECKED_IN: '#C8C8C8',
    StatusName.CHECKED_IN: '#1D68FF',
    StatusName.FINISHED: '#A3AED0',
    'Default': '#C8C8C8',
}

STATUS_DESCRIPTIONS = {
    StatusName.CREATED: 'Reservation has been created by user, but it is not payed yet.',
}


class Status(TrackedModel):
    """
    Named lifecycle state a reservation can be in.
    """

    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'statuses'
        ordering = ['created_at']
        verbose_name_plural = 'statuses'
        constraints = [
            models.UniqueConstraint(
                fields=['name'],
                condition=models.Q(is_deleted=False),
                name='unique_live_status_name'
            ),
        ]

    def __str__(self):
        return self.name

    @property
    def color(self) -> str:
        return STATUS_COLORS.get(self.name, '')

    @property
    def is_terminal(self) -> bool:
        return STATUS_TRANSITIONS.get(self.name) == frozenset()

    def can_transition_to(self, target_name: str) -> bool:
        return target_name in STATUS_TRANSITIONS.get(self.name, frozenset())
