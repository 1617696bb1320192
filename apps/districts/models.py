"""
District model: the scope boundary for role assignments and requests.
"""
from django.db import models
from apps.core.models import SoftDeleteManager, SoftDeleteModel, SoftDeleteQuerySet


class DistrictQuerySet(SoftDeleteQuerySet):

    def active(self):
        return self.filter(is_active=True)


class DistrictManager(SoftDeleteManager.from_queryset(DistrictQuerySet)):
    """Manager for District queries."""

    def get_by_code(self, code):
        """Get an active district by its code, or None."""
        return self.active().filter(code=code.upper()).first()


class District(SoftDeleteModel):
    """
    Administrative district of the community platform.

    Role assignments, role-change requests and audit entries carry an
    optional district. A null district means platform-wide scope.
    """

    name = models.CharField(max_length=255, help_text="Display name")
    code = models.CharField(
        max_length=32,
        unique=True,
        help_text="Short unique code, stored upper-case"
    )
    state = models.CharField(max_length=128, blank=True, help_text="State the district belongs to")
    is_active = models.BooleanField(default=True, db_index=True)

    objects = DistrictManager()

    class Meta:
        db_table = 'districts'
        default_manager_name = 'objects'
        ordering = ['state', 'name']
        indexes = [
            models.Index(fields=['state', 'is_active'], name='districts_state_active_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"

    def save(self, *args, **kwargs):
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)
