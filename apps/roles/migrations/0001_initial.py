# Generated migration for the roles app

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


ROLE_CHOICES = [
    ('resident', 'Resident'),
    ('community_leader', 'Community Leader'),
    ('service_provider', 'Service Provider'),
    ('facility_manager', 'Facility Manager'),
    ('security', 'Security'),
    ('community_admin', 'Community Admin'),
    ('district_coordinator', 'District Coordinator'),
    ('state_admin', 'State Admin'),
    ('admin', 'Admin'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('districts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SystemModule',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('name', models.SlugField(help_text="Module key (e.g., 'facilities')", max_length=64, unique=True)),
                ('display_name', models.CharField(help_text='Human-readable module name', max_length=128)),
                ('description', models.TextField(blank=True)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'db_table': 'system_modules',
                'default_manager_name': 'objects',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ModulePermission',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('role', models.CharField(choices=ROLE_CHOICES, db_index=True, max_length=32)),
                ('can_read', models.BooleanField(default=False)),
                ('can_create', models.BooleanField(default=False)),
                ('can_update', models.BooleanField(default=False)),
                ('can_delete', models.BooleanField(default=False)),
                ('can_approve', models.BooleanField(default=False)),
                ('module', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='permissions', to='roles.systemmodule')),
            ],
            options={
                'db_table': 'module_permissions',
                'default_manager_name': 'objects',
                'ordering': ['role', 'module__name'],
                'constraints': [models.UniqueConstraint(fields=('role', 'module'), name='unique_role_module_permission')],
            },
        ),
        migrations.CreateModel(
            name='UserRoleAssignment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=ROLE_CHOICES, db_index=True, max_length=32)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('assigned_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_by', models.ForeignKey(blank=True, help_text='User who granted the role (null for system grants)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='role_assignments_granted', to=settings.AUTH_USER_MODEL)),
                ('district', models.ForeignKey(blank=True, help_text='District the role applies to (null for platform-wide)', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='role_assignments', to='districts.district')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='role_assignments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'user_role_assignments',
                'ordering': ['-assigned_at'],
                'indexes': [models.Index(fields=['user', 'is_active'], name='role_assign_user_active_idx')],
                'constraints': [models.UniqueConstraint(fields=('user', 'role'), name='unique_user_role_assignment')],
            },
        ),
        migrations.CreateModel(
            name='RoleChangeRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('request_type', models.CharField(choices=[('user_initiated', 'User Initiated')], default='user_initiated', max_length=32)),
                ('current_role', models.CharField(choices=ROLE_CHOICES, max_length=32)),
                ('requested_role', models.CharField(choices=ROLE_CHOICES, db_index=True, max_length=32)),
                ('reason', models.TextField()),
                ('justification', models.TextField(blank=True, null=True)),
                ('attachments', models.JSONField(blank=True, default=list, help_text='Storage references of accepted supporting documents')),
                ('required_approver_role', models.CharField(choices=ROLE_CHOICES, db_index=True, max_length=32)),
                ('approval_requirements', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('submitted', 'Submitted'), ('under_review', 'Under Review'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled')], db_index=True, default='submitted', max_length=20)),
                ('reviewer_role', models.CharField(blank=True, choices=ROLE_CHOICES, max_length=32)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('district', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='role_requests', to='districts.district')),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='role_requests', to=settings.AUTH_USER_MODEL)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='role_requests_reviewed', to=settings.AUTH_USER_MODEL)),
                ('target_user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='role_requests_targeting', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'role_change_requests',
                'default_manager_name': 'objects',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'required_approver_role'], name='role_req_status_approver_idx'),
                    models.Index(fields=['requester', 'status'], name='role_req_requester_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RoleAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('assigned', 'Role Assigned'), ('revoked', 'Role Revoked'), ('activated', 'Role Activated'), ('deactivated', 'Role Deactivated'), ('permission_changed', 'Permission Changed'), ('request_created', 'Request Created'), ('request_under_review', 'Request Under Review'), ('request_approved', 'Request Approved'), ('request_rejected', 'Request Rejected'), ('request_cancelled', 'Request Cancelled')], db_index=True, max_length=32)),
                ('old_role', models.CharField(blank=True, max_length=32)),
                ('new_role', models.CharField(blank=True, max_length=32)),
                ('reason', models.TextField(blank=True)),
                ('target_id', models.UUIDField(blank=True, db_index=True, help_text='Assignment, request or permission row the entry refers to', null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('district', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='role_audit_entries', to='districts.district')),
                ('performed_by', models.ForeignKey(blank=True, help_text='Actor (null for system actions)', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='role_audit_actions', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(blank=True, help_text='User whose role changed (null for configuration changes)', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='role_audit_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'role_audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='role_audit_user_created_idx'),
                    models.Index(fields=['action', 'created_at'], name='role_audit_action_created_idx'),
                    models.Index(fields=['district', 'created_at'], name='role_audit_district_idx'),
                ],
            },
        ),
    ]
