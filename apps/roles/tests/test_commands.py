"""
Tests for the roles management commands.
"""
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from apps.roles.models import ModulePermission, RoleAuditLog, SystemModule
from apps.roles.services.assignment_service import RoleAssignmentService
from apps.roles.services.permission_matrix import PermissionMatrixService


@pytest.mark.django_db
class TestSeedRolePermissions:

    def test_seeds_modules_and_matrix(self):
        out = StringIO()
        call_command('seed_role_permissions', stdout=out)

        assert SystemModule.objects.count() == 12
        assert PermissionMatrixService.get('admin', 'cctv').delete
        assert PermissionMatrixService.get('resident', 'facilities').read
        assert not PermissionMatrixService.get('resident', 'facilities').create
        assert PermissionMatrixService.get('community_admin', 'role_management').approve
        assert not PermissionMatrixService.get('resident', 'role_management').read
        assert 'Seeding complete' in out.getvalue()

    def test_no_row_for_resident_without_grants(self):
        call_command('seed_role_permissions', stdout=StringIO())

        assert not ModulePermission.objects.filter(role='resident', module__name='role_management').exists()

    def test_every_seeded_row_is_audited(self):
        call_command('seed_role_permissions', stdout=StringIO())

        entries = RoleAuditLog.objects.filter(action='permission_changed')
        assert entries.count() == ModulePermission.objects.count()
        assert all(e.metadata['trigger'] == 'seed_role_permissions' for e in entries)

    def test_rerun_is_idempotent_and_keeps_edits(self):
        call_command('seed_role_permissions', stdout=StringIO())
        PermissionMatrixService.set('resident', 'facilities', 'read', False)
        rows = ModulePermission.objects.count()
        entries = RoleAuditLog.objects.count()

        call_command('seed_role_permissions', stdout=StringIO())

        assert ModulePermission.objects.count() == rows
        assert RoleAuditLog.objects.count() == entries
        assert not PermissionMatrixService.get('resident', 'facilities').read

    def test_overwrite_resets_edits(self):
        call_command('seed_role_permissions', stdout=StringIO())
        PermissionMatrixService.set('resident', 'facilities', 'read', False)

        call_command('seed_role_permissions', overwrite=True, stdout=StringIO())

        assert PermissionMatrixService.get('resident', 'facilities').read


@pytest.mark.django_db
class TestGrantRole:

    def test_grants_role(self, resident):
        out = StringIO()
        call_command('grant_role', email='resident@example.com', role='admin', stdout=out)

        assert RoleAssignmentService.holds_role(resident, 'admin')
        entry = RoleAuditLog.objects.get(action='assigned')
        assert entry.performed_by is None
        assert 'Granted admin' in out.getvalue()

    def test_email_is_case_insensitive(self, resident):
        call_command('grant_role', email='Resident@Example.com', role='security', stdout=StringIO())
        assert RoleAssignmentService.holds_role(resident, 'security')

    def test_district_scope(self, resident, district):
        call_command('grant_role', email=resident.email, role='security', district='IKJ', stdout=StringIO())

        assignment = RoleAssignmentService.list_for_user(resident).get()
        assert assignment.district == district

    def test_unknown_user(self, db):
        with pytest.raises(CommandError):
            call_command('grant_role', email='nobody@example.com', role='admin')

    def test_unknown_district(self, resident):
        with pytest.raises(CommandError):
            call_command('grant_role', email=resident.email, role='security', district='zzz')

    def test_duplicate(self, resident, grant):
        grant(resident, 'security')
        with pytest.raises(CommandError):
            call_command('grant_role', email=resident.email, role='security')
