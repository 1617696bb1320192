"""
Django admin configuration for the roles app.

Every change to assignments or the permission matrix must be audited, so
the admin either routes through the role services or is read-only.
"""
from django.contrib import admin

from .models import (
    ModulePermission,
    RoleAuditLog,
    RoleChangeRequest,
    SystemModule,
    UserRoleAssignment,
)
from .services.assignment_service import RoleAssignmentService

CAPABILITY_FIELDS = ['can_read', 'can_create', 'can_update', 'can_delete', 'can_approve']


class ModulePermissionInline(admin.TabularInline):
    model = ModulePermission
    extra = 0
    can_delete = False
    fields = ['role'] + CAPABILITY_FIELDS
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(SystemModule)
class SystemModuleAdmin(admin.ModelAdmin):
    """Admin interface for SystemModule model."""
    list_display = ['name', 'display_name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'display_name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ModulePermissionInline]


@admin.register(ModulePermission)
class ModulePermissionAdmin(admin.ModelAdmin):
    """Read-only; matrix edits go through the API or seed_role_permissions."""
    list_display = ['role', 'module'] + CAPABILITY_FIELDS
    list_filter = ['role', 'module']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(UserRoleAssignment)
class UserRoleAssignmentAdmin(admin.ModelAdmin):
    """
    Admin interface for UserRoleAssignment model.

    Only is_active can be edited. Toggles and deletes go through
    RoleAssignmentService, so the grant-authority check and the audit
    trail apply; new grants use the API or the grant_role command.
    """
    list_display = ['user', 'role', 'is_active', 'district', 'assigned_by', 'assigned_at']
    list_filter = ['role', 'is_active', 'district']
    search_fields = ['user__email']
    fields = ['user', 'role', 'district', 'is_active', 'assigned_by', 'assigned_at', 'updated_at']

    def get_readonly_fields(self, request, obj=None):
        return [name for name in self.fields if name != 'is_active']

    def has_add_permission(self, request):
        return False

    def save_model(self, request, obj, form, change):
        RoleAssignmentService.set_active(
            obj.pk, obj.is_active, performed_by=request.user, reason='Changed in admin'
        )

    def delete_model(self, request, obj):
        RoleAssignmentService.revoke(obj.pk, performed_by=request.user, reason='Revoked in admin')

    def delete_queryset(self, request, queryset):
        for assignment in queryset:
            self.delete_model(request, assignment)


@admin.register(RoleChangeRequest)
class RoleChangeRequestAdmin(admin.ModelAdmin):
    """Read-only view of role change requests; status changes go through the workflow."""
    list_display = ['requester', 'current_role', 'requested_role', 'required_approver_role', 'status', 'created_at']
    list_filter = ['status', 'requested_role', 'required_approver_role']
    search_fields = ['requester__email', 'reason']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(RoleAuditLog)
class RoleAuditLogAdmin(admin.ModelAdmin):
    """Audit entries are append-only: no add, change or delete."""
    list_display = ['action', 'user', 'old_role', 'new_role', 'performed_by', 'district', 'created_at']
    list_filter = ['action', 'district']
    search_fields = ['user__email', 'performed_by__email', 'reason']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
