"""
Roles API URLs.

Provides endpoints for:
- Role catalog, the caller's roles, targets and approval policies
- Role change requests and their review
- Role assignments
- Permission matrix and effective permissions
- Role audit log viewing
- Service readiness
"""
from django.urls import path
from apps.roles.views import (
    RoleCatalogView,
    MyRolesView,
    RoleTargetsView,
    RolePolicyView,
    RoleRequestListCreateView,
    PendingRoleRequestsView,
    RoleRequestReviewView,
    RoleRequestStartReviewView,
    RoleRequestCancelView,
    RoleAssignmentListCreateView,
    RoleAssignmentDetailView,
    RoleAssignmentActiveView,
    PermissionMatrixView,
    EffectivePermissionsView,
    RoleAuditLogListView,
    ServiceHealthView,
)

app_name = 'roles'

urlpatterns = [
    # Catalog endpoints
    path('roles/catalog', RoleCatalogView.as_view(), name='role-catalog'),
    path('roles/me', MyRolesView.as_view(), name='my-roles'),
    path('roles/targets', RoleTargetsView.as_view(), name='role-targets'),
    path('roles/policy', RolePolicyView.as_view(), name='role-policy'),

    # Role change request endpoints
    path('role-requests', RoleRequestListCreateView.as_view(), name='role-request-list'),
    path('role-requests/pending', PendingRoleRequestsView.as_view(), name='role-request-pending'),
    path('role-requests/<uuid:request_id>/review', RoleRequestReviewView.as_view(), name='role-request-review'),
    path('role-requests/<uuid:request_id>/start-review', RoleRequestStartReviewView.as_view(), name='role-request-start-review'),
    path('role-requests/<uuid:request_id>/cancel', RoleRequestCancelView.as_view(), name='role-request-cancel'),

    # Assignment endpoints
    path('role-assignments', RoleAssignmentListCreateView.as_view(), name='role-assignment-list'),
    path('role-assignments/<uuid:assignment_id>', RoleAssignmentDetailView.as_view(), name='role-assignment-detail'),
    path('role-assignments/<uuid:assignment_id>/active', RoleAssignmentActiveView.as_view(), name='role-assignment-active'),

    # Permission endpoints
    path('permission-matrix', PermissionMatrixView.as_view(), name='permission-matrix'),
    path('permissions/effective', EffectivePermissionsView.as_view(), name='effective-permissions'),

    # Audit log endpoint
    path('role-audit-logs', RoleAuditLogListView.as_view(), name='role-audit-log-list'),

    path('health', ServiceHealthView.as_view(), name='service-health'),
]
