"""
Role audit trail: appending entries and browsing them.
"""
from dataclasses import dataclass
from typing import List

from django.core.paginator import Paginator, EmptyPage

from apps.core.exceptions import ValidationError
from apps.roles.models import RoleAuditLog


@dataclass
class AuditPage:
    entries: List[RoleAuditLog]
    count: int
    page: int
    page_size: int
    has_next: bool


class AuditLogService:
    """Append-only access to RoleAuditLog."""

    DEFAULT_PAGE_SIZE = 50
    MAX_PAGE_SIZE = 100

    @classmethod
    def record(cls, action, **fields) -> RoleAuditLog:
        """Append one entry. See RoleAuditLog.record for the accepted fields."""
        return RoleAuditLog.record(action, **fields)

    @classmethod
    def query(cls, user=None, action=None, district=None, page=1,
              page_size=DEFAULT_PAGE_SIZE) -> AuditPage:
        """
        Newest-first page of audit entries, optionally filtered.

        Raises:
            ValidationError: unknown action, or page/page_size out of range
        """
        valid_actions = {choice for choice, _ in RoleAuditLog.ACTION_CHOICES}
        if action and action not in valid_actions:
            raise ValidationError(
                f"Unknown audit action '{action}'",
                details={'allowed': sorted(valid_actions)}
            )
        if page_size < 1 or page_size > cls.MAX_PAGE_SIZE:
            raise ValidationError(
                f"page_size must be between 1 and {cls.MAX_PAGE_SIZE}"
            )

        queryset = RoleAuditLog.objects.select_related(
            'user', 'performed_by', 'district'
        ).order_by('-created_at')
        if user is not None:
            queryset = queryset.for_user(user)
        if action:
            queryset = queryset.filter(action=action)
        if district is not None:
            queryset = queryset.for_district(district)

        paginator = Paginator(queryset, page_size)
        try:
            current = paginator.page(page)
        except EmptyPage:
            if page < 1:
                raise ValidationError("page must be 1 or greater")
            return AuditPage(entries=[], count=paginator.count, page=page,
                             page_size=page_size, has_next=False)

        return AuditPage(
            entries=list(current.object_list),
            count=paginator.count,
            page=page,
            page_size=page_size,
            has_next=current.has_next(),
        )
