"""
Permission matrix: capability grants per (role, module).

Capabilities are {read, create, update, delete, approve}. A missing matrix
row denies everything. A user's effective capabilities on a module are the
OR of the rows for the roles they actively hold.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from django.db import IntegrityError, transaction

from apps.core.exceptions import ValidationError
from apps.core.logging import SecurityLogger
from apps.roles.models import ModulePermission, RoleAuditLog, SystemModule
from apps.roles.policy import role_hierarchy
from apps.roles.services.assignment_service import RoleAssignmentService

logger = logging.getLogger(__name__)

CAPABILITIES = ('read', 'create', 'update', 'delete', 'approve')


@dataclass(frozen=True)
class Capabilities:
    read: bool = False
    create: bool = False
    update: bool = False
    delete: bool = False
    approve: bool = False

    @classmethod
    def from_row(cls, row: Optional[ModulePermission]) -> 'Capabilities':
        if row is None:
            return NO_CAPABILITIES
        return cls(**{cap: getattr(row, f'can_{cap}') for cap in CAPABILITIES})

    def __or__(self, other: 'Capabilities') -> 'Capabilities':
        return Capabilities(**{
            cap: getattr(self, cap) or getattr(other, cap) for cap in CAPABILITIES
        })

    def allows(self, capability: str) -> bool:
        return bool(getattr(self, capability, False))

    def as_dict(self) -> Dict[str, bool]:
        return asdict(self)


NO_CAPABILITIES = Capabilities()


def _check_capability(capability):
    if capability not in CAPABILITIES:
        raise ValidationError(
            f"Unknown capability '{capability}'",
            details={'allowed': list(CAPABILITIES)}
        )


def _module_name(module):
    return module.name if isinstance(module, SystemModule) else module


class PermissionMatrixService:
    """
    Reads and writes the permission matrix and derives effective capabilities.
    """

    @classmethod
    def get(cls, role, module) -> Capabilities:
        """Capabilities of role on module; all-false when no row exists."""
        role_hierarchy.definition(role)
        row = ModulePermission.objects.filter(
            role=role,
            module__name=_module_name(module),
            module__is_active=True,
        ).first()
        return Capabilities.from_row(row)

    @classmethod
    def can_edit(cls, actor, role) -> bool:
        """
        Whether actor may change the matrix row of role.

        None (system) and superusers may edit any row. Anyone else must
        strictly outrank role, so no one can widen their own role or a
        more senior one.
        """
        if actor is None or getattr(actor, 'is_superuser', False):
            return True
        actor_roles = RoleAssignmentService.active_roles(actor)
        if not actor_roles:
            return False
        return role_hierarchy.outranks(role_hierarchy.primary_role(actor_roles), role)

    @classmethod
    def set(cls, role, module, capability, value, performed_by=None) -> ModulePermission:
        """
        Upsert one capability of one (role, module) cell.

        A new row gets only the named capability set; every other
        capability starts false. An existing row flips only the named
        capability.

        Raises:
            ConfigurationError: role is not in the catalog
            ValidationError: unknown capability or module, or performed_by
                does not outrank role
        """
        role_hierarchy.definition(role)
        _check_capability(capability)
        if not cls.can_edit(performed_by, role):
            SecurityLogger.log_unauthorized_grant(performed_by, role, operation='edit_permissions')
            raise ValidationError(
                f"Not authorized to change permissions of role '{role}'",
                details={'role': str(role)}
            )
        field = f'can_{capability}'
        value = bool(value)

        module_obj = module if isinstance(module, SystemModule) else SystemModule.objects.by_name(module)
        if module_obj is None:
            raise ValidationError(
                f"Unknown module '{module}'",
                details={'module': str(module)}
            )

        with transaction.atomic():
            row = ModulePermission.objects.select_for_update().filter(
                role=role, module=module_obj
            ).first()
            previous = getattr(row, field) if row is not None else False

            if row is None:
                row = ModulePermission(role=role, module=module_obj, **{field: value})
                try:
                    with transaction.atomic():
                        row.save()
                except IntegrityError:
                    # Lost an insert race; apply the change to the winner's row
                    row = ModulePermission.objects.select_for_update().get(role=role, module=module_obj)
                    previous = getattr(row, field)
                    setattr(row, field, value)
                    row.save(update_fields=[field, 'updated_at'])
            else:
                setattr(row, field, value)
                row.save(update_fields=[field, 'updated_at'])

            RoleAuditLog.record(
                'permission_changed',
                performed_by=performed_by,
                target_id=row.id,
                metadata={
                    'role': str(role),
                    'module': module_obj.name,
                    'capability': capability,
                    'old_value': previous,
                    'new_value': value,
                },
            )

        logger.info(
            "Permission matrix updated",
            extra={
                'role': str(role),
                'module_name': module_obj.name,
                'capability': capability,
                'value': value,
            }
        )
        return row

    @classmethod
    def effective_permissions(cls, user, module, district=None) -> Capabilities:
        """OR of the matrix rows of the user's active roles on module."""
        roles = RoleAssignmentService.active_roles(user, district)
        if not roles:
            return NO_CAPABILITIES

        result = NO_CAPABILITIES
        for row in ModulePermission.objects.for_roles(roles, _module_name(module)):
            result = result | Capabilities.from_row(row)
        return result

    @classmethod
    def has_capability(cls, user, module, capability, district=None) -> bool:
        _check_capability(capability)
        return cls.effective_permissions(user, module, district).allows(capability)

    @classmethod
    def role_matrix(cls, role) -> Dict[str, Capabilities]:
        """Every active module mapped to role's capabilities on it."""
        role_hierarchy.definition(role)
        rows = {row.module_id: row for row in ModulePermission.objects.for_role(role)}
        return {
            module.name: Capabilities.from_row(rows.get(module.id))
            for module in SystemModule.objects.active()
        }
