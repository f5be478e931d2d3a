# shared/common/mixins.py
"""
Reusable Model Mixins
"""

import uuid
from django.db import models
from django.utils import timezone


class UUIDPrimaryKeyMixin(models.Model):
    """
    Mixin that provides UUID as primary key instead of auto-increment integer.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record"
    )

    class Meta:
        abstract = True


class TimestampMixin(models.Model):
    """
    Mixin that provides created_at and updated_at timestamp fields.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When this record was created"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When this record was last updated"
    )

    class Meta:
        abstract = True


class ActiveMixin(models.Model):
    """
    Mixin for models that can be activated/deactivated.
    """

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether this record is active"
    )

    class Meta:
        abstract = True


class LiveManager(models.Manager):
    """Manager hiding soft-deleted rows."""

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)


class SoftDeleteMixin(models.Model):
    """
    Mixin that provides soft delete functionality.
    Records are marked as deleted instead of being removed from database.

    ``objects`` only sees live rows; ``all_objects`` sees everything.
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft-deleted"
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this record was deleted"
    )

    objects = LiveManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True

    def soft_delete(self):
        """Mark record as deleted and inactive"""
        self.is_deleted = True
        self.deleted_at = timezone.now()
        update_fields = ['is_deleted', 'deleted_at', 'updated_at']
        if hasattr(self, 'is_active'):
            self.is_active = False
            update_fields.append('is_active')
        self.save(update_fields=update_fields)

    def restore(self):
        """Restore a soft-deleted record"""
        self.is_deleted = False
        self.deleted_at = None
        update_fields = ['is_deleted', 'deleted_at', 'updated_at']
        if hasattr(self, 'is_active'):
            self.is_active = True
            update_fields.append('is_active')
        self.save(update_fields=update_fields)


class TrackedModel(
    UUIDPrimaryKeyMixin,
    TimestampMixin,
    ActiveMixin,
    SoftDeleteMixin
):
    """
    Combined base model: UUID key, timestamps, active and soft-delete flags.
    """

    class Meta:
        abstract = True
