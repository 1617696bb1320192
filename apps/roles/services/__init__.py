"""
Role lifecycle services.
"""
from apps.roles.services.assignment_service import RoleAssignmentService
from apps.roles.services.attachment_service import (
    AttachmentBatchResult, AttachmentFailure, AttachmentService,
)
from apps.roles.services.audit_service import AuditLogService, AuditPage
from apps.roles.services.permission_matrix import (
    CAPABILITIES, Capabilities, NO_CAPABILITIES, PermissionMatrixService,
)
from apps.roles.services.role_request_service import RoleRequestService, SubmissionResult

__all__ = [
    'AttachmentBatchResult',
    'AttachmentFailure',
    'AttachmentService',
    'AuditLogService',
    'AuditPage',
    'CAPABILITIES',
    'Capabilities',
    'NO_CAPABILITIES',
    'PermissionMatrixService',
    'RoleAssignmentService',
    'RoleRequestService',
    'SubmissionResult',
]
