"""
DRF permission classes and decorators for module capability enforcement.

This module provides:
- HasModuleCapability: DRF permission class backed by the permission matrix
- @requires_capability: Decorator to declare the required capability on views
"""
import logging
from rest_framework.permissions import BasePermission

from apps.core.logging import SecurityLogger

logger = logging.getLogger(__name__)


class HasModuleCapability(BasePermission):
    """
    DRF permission class that checks the caller's effective capabilities.

    The view declares which capability it needs per HTTP method:

        class AuditLogView(APIView):
            permission_classes = [IsAuthenticated, HasModuleCapability]
            required_capabilities = {'GET': ('role_management', 'read')}

    Methods absent from the mapping are allowed. Superusers bypass the
    check. Capabilities are OR-ed across the caller's active role
    assignments in the request district (see request.district).
    """

    message = 'You do not have the required module capability for this action.'

    def has_permission(self, request, view):
        required = getattr(view, 'required_capabilities', None) or {}
        needed = required.get(request.method)
        if not needed:
            return True

        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True

        module, capability = needed
        district = getattr(request, 'district', None)

        from apps.roles.services.permission_matrix import PermissionMatrixService
        if PermissionMatrixService.has_capability(user, module, capability, district=district):
            return True

        logger.warning(
            f"Permission denied: missing {module}:{capability}",
            extra={
                'user_id': str(user.pk),
                'module_name': module,
                'capability': capability,
                'view': view.__class__.__name__,
                'method': request.method,
                'path': request.path,
                'request_id': getattr(request, 'request_id', None),
            }
        )
        SecurityLogger.log_permission_denied(user, module, capability, district=district)
        return False


def requires_capability(module, capability, methods=('GET', 'POST', 'PUT', 'PATCH', 'DELETE')):
    """
    Class decorator declaring the capability a view needs.

    Usage:
        @requires_capability('role_management', 'update', methods=('POST',))
        class PermissionMatrixView(APIView):
            ...

    Adds HasModuleCapability to the view's permission classes if it is
    not already present.
    """
    def decorator(view_class):
        required = dict(getattr(view_class, 'required_capabilities', None) or {})
        for method in methods:
            required[method] = (module, capability)
        view_class.required_capabilities = required

        permission_classes = list(getattr(view_class, 'permission_classes', []))
        if HasModuleCapability not in permission_classes:
            permission_classes.append(HasModuleCapability)
        view_class.permission_classes = permission_classes
        return view_class

    return decorator
