"""
Model bases shared by the platform apps.

BaseModel carries the UUID key and timestamps. SoftDeleteModel adds a
deleted_at stamp for configuration rows (districts, system modules) that
historical requests and audit entries keep pointing at.
"""
import uuid
from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    """Abstract model with a UUID primary key and created/updated timestamps."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class SoftDeleteQuerySet(models.QuerySet):

    def delete(self):
        """Stamp every row in the queryset as deleted."""
        return self.update(deleted_at=timezone.now(), updated_at=timezone.now())


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    """Hides soft-deleted rows."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class SoftDeleteModel(BaseModel):
    """
    BaseModel whose delete() only stamps deleted_at.

    The default manager skips deleted rows; objects_with_deleted sees them.
    """

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = SoftDeleteManager()
    objects_with_deleted = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    def delete(self, using=None, keep_parents=False):
        self.deleted_at = timezone.now()
        self.save(using=using, update_fields=['deleted_at', 'updated_at'])
