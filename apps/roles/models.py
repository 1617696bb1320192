"""
Role lifecycle models.

Implements:
- SystemModule (functional areas governed by the permission matrix)
- ModulePermission (capability grants per role and module)
- UserRoleAssignment (many-to-many user/role relation with activation)
- RoleChangeRequest (self-service role change with snapshotted policy)
- RoleAuditLog (append-only trail of role mutations)

Roles themselves are not rows: they form the closed set defined in
apps.roles.policy.
"""
import logging
import uuid
from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.core.models import BaseModel, SoftDeleteModel
from apps.roles.policy import Role

logger = logging.getLogger(__name__)

ROLE_FIELD_LENGTH = 32


class SystemModuleManager(models.Manager):
    """Manager for SystemModule queries."""

    def active(self):
        return self.filter(is_active=True, deleted_at__isnull=True)

    def by_name(self, name):
        return self.active().filter(name=name).first()


class SystemModule(SoftDeleteModel):
    """
    Functional area of the platform whose access the permission matrix governs.

    Examples: 'announcements', 'facilities', 'security', 'role_management'.
    """

    name = models.SlugField(
        max_length=64,
        unique=True,
        help_text="Module key (e.g., 'facilities')"
    )
    display_name = models.CharField(max_length=128, help_text="Human-readable module name")
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    objects = SystemModuleManager()

    class Meta:
        db_table = 'system_modules'
        default_manager_name = 'objects'
        ordering = ['name']

    def __str__(self):
        return self.name


class ModulePermissionManager(models.Manager):
    """Manager for ModulePermission queries."""

    def for_role(self, role):
        return self.filter(role=role).select_related('module')

    def for_roles(self, roles, module_name):
        return self.filter(
            role__in=list(roles),
            module__name=module_name,
            module__is_active=True,
        )


class ModulePermission(BaseModel):
    """
    Capability grants of one role on one module.

    A missing row means every capability is denied.
    """

    role = models.CharField(
        max_length=ROLE_FIELD_LENGTH,
        choices=Role.choices,
        db_index=True,
    )
    module = models.ForeignKey(
        SystemModule,
        on_delete=models.CASCADE,
        related_name='permissions',
    )

    can_read = models.BooleanField(default=False)
    can_create = models.BooleanField(default=False)
    can_update = models.BooleanField(default=False)
    can_delete = models.BooleanField(default=False)
    can_approve = models.BooleanField(default=False)

    objects = ModulePermissionManager()

    class Meta:
        db_table = 'module_permissions'
        default_manager_name = 'objects'
        ordering = ['role', 'module__name']
        constraints = [
            models.UniqueConstraint(fields=['role', 'module'], name='unique_role_module_permission'),
        ]

    def __str__(self):
        return f"{self.role} on {self.module_id}"


class UserRoleAssignmentQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def for_user(self, user):
        return self.filter(user=user)

    def in_district(self, district):
        """Assignments valid in district: those scoped to it plus platform-wide ones."""
        if district is None:
            return self
        return self.filter(models.Q(district=district) | models.Q(district__isnull=True))


class UserRoleAssignment(models.Model):
    """
    A user's hold on one role.

    At most one row exists per (user, role), enforced by a unique
    constraint. Deactivation suspends the role's authority and keeps the
    row; revoking deletes the row.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='role_assignments',
    )
    role = models.CharField(
        max_length=ROLE_FIELD_LENGTH,
        choices=Role.choices,
        db_index=True,
    )
    is_active = models.BooleanField(default=True, db_index=True)
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='role_assignments_granted',
        help_text="User who granted the role (null for system grants)"
    )
    assigned_at = models.DateTimeField(default=timezone.now)
    district = models.ForeignKey(
        'districts.District',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='role_assignments',
        help_text="District the role applies to (null for platform-wide)"
    )
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserRoleAssignmentQuerySet.as_manager()

    class Meta:
        db_table = 'user_role_assignments'
        ordering = ['-assigned_at']
        constraints = [
            models.UniqueConstraint(fields=['user', 'role'], name='unique_user_role_assignment'),
        ]
        indexes = [
            models.Index(fields=['user', 'is_active'], name='role_assign_user_active_idx'),
        ]

    def __str__(self):
        state = 'active' if self.is_active else 'inactive'
        return f"{self.user_id} as {self.role} ({state})"


class RequestStatus(models.TextChoices):
    SUBMITTED = 'submitted', 'Submitted'
    UNDER_REVIEW = 'under_review', 'Under Review'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'
    CANCELLED = 'cancelled', 'Cancelled'


OPEN_STATUSES = (RequestStatus.SUBMITTED, RequestStatus.UNDER_REVIEW)
TERMINAL_STATUSES = (RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED)


class AppendOnlyError(Exception):
    """Raised on any attempt to remove a role change request, or to modify or remove an audit entry."""


class RoleChangeRequestQuerySet(models.QuerySet):

    def delete(self):
        raise AppendOnlyError("Role change requests cannot be deleted")

    def open(self):
        return self.filter(status__in=OPEN_STATUSES)

    def for_requester(self, user):
        return self.filter(requester=user)


class RoleChangeRequest(BaseModel):
    """
    A user's request to move from their current role into another.

    current_role, required_approver_role and approval_requirements are
    captured once at submission and never recomputed. Status only changes
    through the workflow in apps.roles.services.role_request_service.
    Requests are never deleted; cancellation is a terminal status.
    """

    REQUEST_TYPE_CHOICES = [
        ('user_initiated', 'User Initiated'),
    ]

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='role_requests',
    )
    target_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='role_requests_targeting',
    )
    request_type = models.CharField(
        max_length=32,
        choices=REQUEST_TYPE_CHOICES,
        default='user_initiated',
    )

    current_role = models.CharField(max_length=ROLE_FIELD_LENGTH, choices=Role.choices)
    requested_role = models.CharField(max_length=ROLE_FIELD_LENGTH, choices=Role.choices, db_index=True)
    reason = models.TextField()
    justification = models.TextField(blank=True, null=True)
    attachments = models.JSONField(
        default=list,
        blank=True,
        help_text="Storage references of accepted supporting documents"
    )

    required_approver_role = models.CharField(max_length=ROLE_FIELD_LENGTH, choices=Role.choices, db_index=True)
    approval_requirements = models.JSONField(default=list, blank=True)

    status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.SUBMITTED,
        db_index=True,
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='role_requests_reviewed',
    )
    reviewer_role = models.CharField(max_length=ROLE_FIELD_LENGTH, choices=Role.choices, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    district = models.ForeignKey(
        'districts.District',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='role_requests',
    )

    objects = RoleChangeRequestQuerySet.as_manager()

    class Meta:
        db_table = 'role_change_requests'
        default_manager_name = 'objects'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'required_approver_role'], name='role_req_status_approver_idx'),
            models.Index(fields=['requester', 'status'], name='role_req_requester_status_idx'),
        ]

    def __str__(self):
        return f"{self.current_role} -> {self.requested_role} ({self.status})"

    @property
    def is_open(self):
        return self.status in OPEN_STATUSES

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def delete(self, *args, **kwargs):
        raise AppendOnlyError("Role change requests cannot be deleted")


class RoleAuditLogQuerySet(models.QuerySet):
    """QuerySet that refuses bulk mutation of audit rows."""

    def update(self, **kwargs):
        raise AppendOnlyError("Role audit entries cannot be updated")

    def delete(self):
        raise AppendOnlyError("Role audit entries cannot be deleted")

    def for_user(self, user):
        return self.filter(user=user)

    def for_district(self, district):
        return self.filter(district=district)


class RoleAuditLog(models.Model):
    """
    Append-only record of a role mutation.

    Actions: assigned, revoked, activated, deactivated, permission_changed,
    request_created, request_under_review, request_approved,
    request_rejected, request_cancelled.
    """

    ACTION_CHOICES = [
        ('assigned', 'Role Assigned'),
        ('revoked', 'Role Revoked'),
        ('activated', 'Role Activated'),
        ('deactivated', 'Role Deactivated'),
        ('permission_changed', 'Permission Changed'),
        ('request_created', 'Request Created'),
        ('request_under_review', 'Request Under Review'),
        ('request_approved', 'Request Approved'),
        ('request_rejected', 'Request Rejected'),
        ('request_cancelled', 'Request Cancelled'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='role_audit_entries',
        help_text="User whose role changed (null for configuration changes)"
    )
    action = models.CharField(max_length=32, choices=ACTION_CHOICES, db_index=True)
    old_role = models.CharField(max_length=ROLE_FIELD_LENGTH, blank=True)
    new_role = models.CharField(max_length=ROLE_FIELD_LENGTH, blank=True)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='role_audit_actions',
        help_text="Actor (null for system actions)"
    )
    reason = models.TextField(blank=True)
    district = models.ForeignKey(
        'districts.District',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='role_audit_entries',
    )
    target_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Assignment, request or permission row the entry refers to"
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = RoleAuditLogQuerySet.as_manager()

    class Meta:
        db_table = 'role_audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='role_audit_user_created_idx'),
            models.Index(fields=['action', 'created_at'], name='role_audit_action_created_idx'),
            models.Index(fields=['district', 'created_at'], name='role_audit_district_idx'),
        ]

    def __str__(self):
        return f"{self.action}: {self.old_role or '-'} -> {self.new_role or '-'}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError("Role audit entries cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyError("Role audit entries cannot be deleted")

    @classmethod
    def record(cls, action, user=None, old_role='', new_role='', performed_by=None,
               reason='', district=None, target_id=None, metadata=None):
        """
        Append one audit entry.

        Runs inside the caller's transaction; a failure here rolls back the
        mutation it describes.
        """
        if performed_by is not None and not getattr(performed_by, 'is_authenticated', True):
            performed_by = None

        entry = cls.objects.create(
            action=action,
            user=user,
            old_role=old_role or '',
            new_role=new_role or '',
            performed_by=performed_by,
            reason=reason or '',
            district=district,
            target_id=target_id,
            metadata=metadata or {},
        )
        logger.info(
            f"Role audit: {action}",
            extra={
                'action': action,
                'user_id': str(user.pk) if user else None,
                'old_role': old_role,
                'new_role': new_role,
                'performed_by': str(performed_by.pk) if performed_by else None,
                'district_id': str(district.pk) if district else None,
            }
        )
        return entry
