"""
Unit tests for RoleAssignmentService.

Tests assignment, duplicate detection, revocation, activation toggles,
district scoping, caching and the administrative grant path.
"""
import uuid

import pytest

from apps.core.exceptions import (
    ConfigurationError, ConflictError, DuplicateRoleError, NotFoundError, ValidationError,
)
from apps.roles.models import RoleAuditLog, UserRoleAssignment
from apps.roles.services.assignment_service import RoleAssignmentService


@pytest.mark.django_db
class TestAssign:

    def test_assign_creates_active_row(self, resident, community_admin):
        assignment = RoleAssignmentService.assign(resident, 'security', assigned_by=community_admin)

        assert assignment.is_active
        assert assignment.assigned_by == community_admin
        assert RoleAssignmentService.active_roles(resident) == {'security'}

    def test_assign_writes_audit_entry(self, resident, community_admin):
        assignment = RoleAssignmentService.assign(
            resident, 'security', assigned_by=community_admin, reason='Vetted guard'
        )

        entry = RoleAuditLog.objects.get(action='assigned', user=resident)
        assert entry.new_role == 'security'
        assert entry.performed_by == community_admin
        assert entry.reason == 'Vetted guard'
        assert entry.target_id == assignment.id

    def test_duplicate_assign_is_conflict(self, resident):
        RoleAssignmentService.assign(resident, 'security')

        with pytest.raises(DuplicateRoleError):
            RoleAssignmentService.assign(resident, 'security')

        assert UserRoleAssignment.objects.filter(user=resident, role='security').count() == 1
        assert RoleAuditLog.objects.filter(action='assigned', user=resident).count() == 1

    def test_duplicate_of_inactive_row_is_conflict(self, resident):
        assignment = RoleAssignmentService.assign(resident, 'security')
        RoleAssignmentService.set_active(assignment.id, False)

        with pytest.raises(ConflictError):
            RoleAssignmentService.assign(resident, 'security')

    def test_unknown_role_is_configuration_error(self, resident):
        with pytest.raises(ConfigurationError):
            RoleAssignmentService.assign(resident, 'janitor')
        assert not UserRoleAssignment.objects.filter(user=resident).exists()

    def test_multiple_roles_per_user(self, resident):
        RoleAssignmentService.assign(resident, 'community_leader')
        RoleAssignmentService.assign(resident, 'security')

        assert RoleAssignmentService.active_roles(resident) == {'community_leader', 'security'}
        assert RoleAssignmentService.current_role(resident) == 'security'


@pytest.mark.django_db
class TestRevoke:

    def test_revoke_deletes_row(self, resident, community_admin):
        assignment = RoleAssignmentService.assign(resident, 'security')

        RoleAssignmentService.revoke(assignment.id, performed_by=community_admin, reason='Contract ended')

        assert not UserRoleAssignment.objects.filter(pk=assignment.id).exists()
        assert RoleAssignmentService.active_roles(resident) == set()

        entry = RoleAuditLog.objects.get(action='revoked')
        assert entry.old_role == 'security'
        assert entry.new_role == ''
        assert entry.performed_by == community_admin

    def test_revoke_allows_reassign(self, resident):
        assignment = RoleAssignmentService.assign(resident, 'security')
        RoleAssignmentService.revoke(assignment.id)

        RoleAssignmentService.assign(resident, 'security')
        assert RoleAssignmentService.holds_role(resident, 'security')

    def test_revoke_unknown_id(self):
        with pytest.raises(NotFoundError):
            RoleAssignmentService.revoke(uuid.uuid4())

    def test_revoke_malformed_id(self):
        with pytest.raises(NotFoundError):
            RoleAssignmentService.revoke('not-a-uuid')

    def test_outranked_actor_cannot_revoke(self, make_user, community_admin):
        admin = make_user('admin@example.com')
        assignment = RoleAssignmentService.assign(admin, 'admin')

        with pytest.raises(ValidationError):
            RoleAssignmentService.revoke(assignment.id, performed_by=community_admin)

        assert UserRoleAssignment.objects.filter(pk=assignment.id).exists()
        assert not RoleAuditLog.objects.filter(action='revoked').exists()

    def test_actor_cannot_revoke_outside_own_district(self, make_user, resident, district, other_district):
        actor = make_user()
        RoleAssignmentService.assign(actor, 'community_admin', district=district)
        assignment = RoleAssignmentService.assign(resident, 'security', district=other_district)

        with pytest.raises(ValidationError):
            RoleAssignmentService.revoke(assignment.id, performed_by=actor)

    def test_superuser_may_revoke_any_role(self, make_user, superuser):
        admin = make_user('admin@example.com')
        assignment = RoleAssignmentService.assign(admin, 'admin')

        RoleAssignmentService.revoke(assignment.id, performed_by=superuser)

        assert not UserRoleAssignment.objects.filter(pk=assignment.id).exists()


@pytest.mark.django_db
class TestSetActive:

    def test_deactivate_and_reactivate(self, resident):
        assignment = RoleAssignmentService.assign(resident, 'security')

        RoleAssignmentService.set_active(assignment.id, False)
        assert RoleAssignmentService.active_roles(resident) == set()
        assert RoleAssignmentService.current_role(resident) == 'resident'

        RoleAssignmentService.set_active(assignment.id, True)
        assert RoleAssignmentService.active_roles(resident) == {'security'}

        actions = RoleAuditLog.objects.filter(user=resident).values_list('action', flat=True)
        assert sorted(actions) == ['activated', 'assigned', 'deactivated']

    def test_noop_toggle_writes_nothing(self, resident):
        assignment = RoleAssignmentService.assign(resident, 'security')

        RoleAssignmentService.set_active(assignment.id, True)

        assert RoleAuditLog.objects.filter(user=resident).count() == 1

    def test_unknown_id(self):
        with pytest.raises(NotFoundError):
            RoleAssignmentService.set_active(uuid.uuid4(), False)

    def test_outranked_actor_cannot_deactivate(self, make_user, community_admin):
        admin = make_user('admin@example.com')
        assignment = RoleAssignmentService.assign(admin, 'admin')

        with pytest.raises(ValidationError):
            RoleAssignmentService.set_active(assignment.id, False, performed_by=community_admin)

        assert RoleAssignmentService.holds_role(admin, 'admin')
        assert not RoleAuditLog.objects.filter(action='deactivated').exists()

    def test_actor_may_toggle_junior_role(self, resident, community_admin):
        assignment = RoleAssignmentService.assign(resident, 'security')

        RoleAssignmentService.set_active(assignment.id, False, performed_by=community_admin)

        assert RoleAuditLog.objects.get(action='deactivated').performed_by == community_admin


@pytest.mark.django_db
class TestActiveRoles:

    def test_no_assignments_means_resident(self, resident):
        assert RoleAssignmentService.active_roles(resident) == set()
        assert RoleAssignmentService.current_role(resident) == 'resident'

    def test_district_scoping(self, resident, district, other_district):
        RoleAssignmentService.assign(resident, 'security', district=district)
        RoleAssignmentService.assign(resident, 'community_leader')

        assert RoleAssignmentService.active_roles(resident, district) == {'security', 'community_leader'}
        assert RoleAssignmentService.active_roles(resident, other_district) == {'community_leader'}
        assert RoleAssignmentService.active_roles(resident) == {'security', 'community_leader'}

    def test_cache_is_invalidated_on_mutation(self, resident):
        assert RoleAssignmentService.active_roles(resident) == set()  # primes the cache

        RoleAssignmentService.assign(resident, 'security')

        assert RoleAssignmentService.active_roles(resident) == {'security'}

    def test_cache_is_invalidated_on_direct_row_change(self, resident):
        assignment = RoleAssignmentService.assign(resident, 'security')
        assert RoleAssignmentService.holds_role(resident, 'security')

        UserRoleAssignment.objects.get(pk=assignment.id).delete()

        assert not RoleAssignmentService.holds_role(resident, 'security')

    def test_unsaved_user_has_no_roles(self):
        from apps.accounts.models import User
        assert RoleAssignmentService.active_roles(User(email='ghost@example.com')) == set()


@pytest.mark.django_db
class TestAdminGrant:

    def test_senior_actor_may_grant(self, resident, community_admin):
        assignment = RoleAssignmentService.admin_grant(resident, 'security', granted_by=community_admin)

        assert assignment.assigned_by == community_admin
        entry = RoleAuditLog.objects.get(action='assigned', user=resident)
        assert entry.metadata == {'path': 'admin_grant'}

    def test_grant_not_bounded_by_escalation_graph(self, resident, district_coordinator):
        """A resident cannot request community_admin, but an administrator can grant it."""
        RoleAssignmentService.admin_grant(resident, 'community_admin', granted_by=district_coordinator)
        assert RoleAssignmentService.current_role(resident) == 'community_admin'

    def test_actor_may_grant_own_level(self, resident, community_admin):
        RoleAssignmentService.admin_grant(resident, 'community_admin', granted_by=community_admin)
        assert RoleAssignmentService.holds_role(resident, 'community_admin')

    def test_outranked_actor_refused(self, resident, community_admin):
        with pytest.raises(ValidationError):
            RoleAssignmentService.admin_grant(resident, 'district_coordinator', granted_by=community_admin)
        assert not UserRoleAssignment.objects.filter(user=resident).exists()

    def test_actor_without_roles_refused(self, resident, make_user):
        with pytest.raises(ValidationError):
            RoleAssignmentService.admin_grant(resident, 'community_leader', granted_by=make_user())

    def test_superuser_may_grant_anything(self, resident, superuser):
        RoleAssignmentService.admin_grant(resident, 'admin', granted_by=superuser)
        assert RoleAssignmentService.holds_role(resident, 'admin')

    def test_system_grant(self, resident):
        assignment = RoleAssignmentService.admin_grant(resident, 'admin', granted_by=None)
        assert assignment.assigned_by is None
