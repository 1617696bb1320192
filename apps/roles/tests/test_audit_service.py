"""
Tests for AuditLogService.
"""
import pytest

from apps.core.exceptions import ValidationError
from apps.roles.models import RoleAuditLog
from apps.roles.services.audit_service import AuditLogService


@pytest.mark.django_db
class TestAuditLogService:

    def test_record(self, resident, community_admin):
        entry = AuditLogService.record(
            'assigned', user=resident, new_role='security', performed_by=community_admin
        )
        assert RoleAuditLog.objects.get(pk=entry.pk).performed_by == community_admin

    def test_query_newest_first(self, resident):
        first = AuditLogService.record('assigned', user=resident, new_role='security')
        second = AuditLogService.record('deactivated', user=resident, old_role='security')

        page = AuditLogService.query(user=resident)

        assert [e.pk for e in page.entries] == [second.pk, first.pk]
        assert page.count == 2
        assert not page.has_next

    def test_filters(self, resident, make_user, district):
        other = make_user()
        AuditLogService.record('assigned', user=resident, new_role='security', district=district)
        AuditLogService.record('revoked', user=resident, old_role='security')
        AuditLogService.record('assigned', user=other, new_role='community_leader')

        assert AuditLogService.query(user=resident).count == 2
        assert AuditLogService.query(action='assigned').count == 2
        assert AuditLogService.query(district=district).count == 1
        assert AuditLogService.query(user=resident, action='revoked').count == 1

    def test_pagination(self, resident):
        for _ in range(5):
            AuditLogService.record('assigned', user=resident, new_role='security')

        page = AuditLogService.query(page=2, page_size=2)

        assert len(page.entries) == 2
        assert page.count == 5
        assert page.has_next

    def test_page_past_end_is_empty(self, resident):
        AuditLogService.record('assigned', user=resident, new_role='security')

        page = AuditLogService.query(page=3, page_size=10)

        assert page.entries == []
        assert page.count == 1
        assert not page.has_next

    def test_unknown_action(self):
        with pytest.raises(ValidationError):
            AuditLogService.query(action='exploded')

    def test_page_size_bounds(self):
        with pytest.raises(ValidationError):
            AuditLogService.query(page_size=0)
        with pytest.raises(ValidationError):
            AuditLogService.query(page_size=AuditLogService.MAX_PAGE_SIZE + 1)
