"""
User role assignment management.

Two entry points write to the assignment table:
- admin_grant: an administrator grants a role directly. Not bounded by the
  escalation graph, but the grantor must hold a role at least as senior as
  the one granted.
- the self-service path: RoleRequestService.review calls assign() when a
  role change request is approved.

Both go through assign(), which relies on the (user, role) unique constraint
so concurrent grants cannot create duplicate rows.

Revoking or toggling an assignment takes the same authority as granting
its role.
An approved role change also retires the role it was requested from.
"""
import logging
from typing import List, Optional, Set, Tuple

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from apps.core.db import db_timeout
from apps.core.exceptions import DuplicateRoleError, NotFoundError, ValidationError
from apps.core.logging import SecurityLogger
from apps.roles.models import RoleAuditLog, UserRoleAssignment
from apps.roles.policy import role_hierarchy

logger = logging.getLogger(__name__)


class RoleAssignmentService:
    """
    CRUD over UserRoleAssignment with audit and active-role caching.
    """

    CACHE_KEY = "roles:active:user:{user_id}"

    @classmethod
    def _cache_ttl(cls):
        return getattr(settings, 'ROLE_CACHE_TTL', 300)

    @classmethod
    def _active_pairs(cls, user) -> List[Tuple[str, Optional[str]]]:
        """(role, district_id) of every active assignment of user, cached."""
        cache_key = cls.CACHE_KEY.format(user_id=user.pk)
        cached = cache.get(cache_key)
        if cached is not None:
            return [tuple(pair) for pair in cached]

        pairs = [
            (role, str(district_id) if district_id else None)
            for role, district_id in UserRoleAssignment.objects.for_user(user).active()
            .values_list('role', 'district_id')
        ]
        cache.set(cache_key, pairs, cls._cache_ttl())
        return pairs

    @classmethod
    def invalidate_cache(cls, user_id):
        cache.delete(cls.CACHE_KEY.format(user_id=user_id))

    @classmethod
    def _invalidate_now_and_on_commit(cls, user_id):
        cls.invalidate_cache(user_id)
        transaction.on_commit(lambda: cls.invalidate_cache(user_id))

    @classmethod
    def active_roles(cls, user, district=None) -> Set[str]:
        """
        Roles the user actively holds.

        With a district, only assignments scoped to that district or
        platform-wide ones count.
        """
        if user is None or not user.pk:
            return set()
        district_id = str(district.pk) if district is not None else None
        return {
            role for role, role_district in cls._active_pairs(user)
            if district_id is None or role_district in (None, district_id)
        }

    @classmethod
    def current_role(cls, user, district=None) -> str:
        """The user's primary role: highest-level active role, resident if none."""
        return role_hierarchy.primary_role(cls.active_roles(user, district))

    @classmethod
    def holds_role(cls, user, role, district=None) -> bool:
        return role in cls.active_roles(user, district)

    @classmethod
    def list_for_user(cls, user):
        return UserRoleAssignment.objects.for_user(user).select_related('district', 'assigned_by')

    @classmethod
    def find(cls, user, role) -> Optional[UserRoleAssignment]:
        """The user's row for role in any state and district, or None."""
        return UserRoleAssignment.objects.filter(user=user, role=role).select_related('district').first()

    @classmethod
    def get(cls, assignment_id) -> UserRoleAssignment:
        try:
            return UserRoleAssignment.objects.select_related('user', 'district').get(pk=assignment_id)
        except (UserRoleAssignment.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError(
                "Role assignment not found",
                details={'assignment_id': str(assignment_id)}
            )

    @classmethod
    def assign(cls, user, role, assigned_by=None, district=None, reason='',
               timeout=None, metadata=None) -> UserRoleAssignment:
        """
        Create an active assignment of role to user.

        Raises:
            ConfigurationError: role is not in the catalog
            DuplicateRoleError: a row for (user, role) already exists,
                active or not
            RetryableError: the database timed out
        """
        role_hierarchy.definition(role)

        try:
            with db_timeout(timeout, operation='role_assignment.assign'):
                assignment = UserRoleAssignment.objects.create(
                    user=user,
                    role=role,
                    assigned_by=assigned_by,
                    district=district,
                )
                RoleAuditLog.record(
                    'assigned',
                    user=user,
                    new_role=role,
                    performed_by=assigned_by,
                    reason=reason,
                    district=district,
                    target_id=assignment.id,
                    metadata=metadata,
                )
        except IntegrityError as e:
            logger.info(
                "Duplicate role assignment refused",
                extra={'user_id': str(user.pk), 'role': role}
            )
            raise DuplicateRoleError(
                f"User already has an assignment for role '{role}'",
                details={'user_id': str(user.pk), 'role': role}
            ) from e

        cls._invalidate_now_and_on_commit(user.pk)
        return assignment

    @classmethod
    def can_grant(cls, actor, role, district=None) -> bool:
        """
        Whether actor may grant role directly.

        None (system) and superusers may grant anything. Otherwise the
        actor's primary role in the district must be at least as senior as
        role.
        """
        if actor is None or getattr(actor, 'is_superuser', False):
            return True
        actor_roles = cls.active_roles(actor, district)
        if not actor_roles:
            return False
        return role_hierarchy.at_least(role_hierarchy.primary_role(actor_roles), role)

    @classmethod
    def admin_grant(cls, user, role, granted_by, district=None, reason='',
                    timeout=None) -> UserRoleAssignment:
        """
        Administrative direct grant, not bounded by the escalation graph.

        Raises:
            ValidationError: granted_by is outranked by role
            DuplicateRoleError: (user, role) row already exists
        """
        role_hierarchy.definition(role)
        if not cls.can_grant(granted_by, role, district):
            SecurityLogger.log_unauthorized_grant(granted_by, role, str(user.pk))
            raise ValidationError(
                f"Not authorized to grant role '{role}'",
                details={'role': role}
            )
        return cls.assign(
            user, role,
            assigned_by=granted_by,
            district=district,
            reason=reason,
            timeout=timeout,
            metadata={'path': 'admin_grant'},
        )

    @classmethod
    def _ensure_can_manage(cls, assignment, actor, operation):
        """Revoking or toggling an assignment takes the same authority as granting it."""
        if cls.can_grant(actor, assignment.role, assignment.district):
            return
        SecurityLogger.log_unauthorized_grant(
            actor, assignment.role, str(assignment.user_id), operation=operation
        )
        raise ValidationError(
            f"Not authorized to {operation} role '{assignment.role}'",
            details={'role': assignment.role, 'assignment_id': str(assignment.pk)}
        )

    @classmethod
    def revoke(cls, assignment_id, performed_by=None, reason='', timeout=None):
        """
        Permanently delete an assignment. There is no undo.

        Raises:
            ValidationError: performed_by is outranked by the assignment's role
            NotFoundError: assignment does not exist
        """
        with db_timeout(timeout, operation='role_assignment.revoke'):
            try:
                assignment = UserRoleAssignment.objects.select_for_update().select_related(
                    'user', 'district'
                ).get(pk=assignment_id)
            except (UserRoleAssignment.DoesNotExist, ValueError, DjangoValidationError):
                raise NotFoundError(
                    "Role assignment not found",
                    details={'assignment_id': str(assignment_id)}
                )

            cls._ensure_can_manage(assignment, performed_by, 'revoke')

            user = assignment.user
            role = assignment.role
            district = assignment.district
            assignment_pk = assignment.pk
            assignment.delete()

            RoleAuditLog.record(
                'revoked',
                user=user,
                old_role=role,
                performed_by=performed_by,
                reason=reason,
                district=district,
                target_id=assignment_pk,
            )

        cls._invalidate_now_and_on_commit(user.pk)
        logger.info(
            "Role assignment revoked",
            extra={'user_id': str(user.pk), 'role': role, 'assignment_id': str(assignment_pk)}
        )

    @classmethod
    def set_active(cls, assignment_id, active, performed_by=None, reason='',
                   timeout=None) -> UserRoleAssignment:
        """
        Activate or deactivate an assignment in place.

        A no-op toggle (already in the requested state) writes nothing.

        Raises:
            ValidationError: performed_by is outranked by the assignment's role
            NotFoundError: assignment does not exist
        """
        active = bool(active)
        with db_timeout(timeout, operation='role_assignment.set_active'):
            try:
                assignment = UserRoleAssignment.objects.select_for_update().select_related(
                    'user', 'district'
                ).get(pk=assignment_id)
            except (UserRoleAssignment.DoesNotExist, ValueError, DjangoValidationError):
                raise NotFoundError(
                    "Role assignment not found",
                    details={'assignment_id': str(assignment_id)}
                )

            cls._ensure_can_manage(
                assignment, performed_by, 'activate' if active else 'deactivate'
            )

            if assignment.is_active == active:
                return assignment

            cls._write_active(assignment, active, performed_by, reason)

        cls._invalidate_now_and_on_commit(assignment.user_id)
        return assignment

    @classmethod
    def retire(cls, user, role, performed_by=None, reason='', metadata=None):
        """
        Deactivate user's active assignment of role, if there is one.

        Called by an approved role change to step the user down from the
        role the request was made from. The approval already carries the
        reviewer's authority, so no grant check is made here. Must run
        inside a transaction.
        """
        assignment = UserRoleAssignment.objects.select_for_update().select_related(
            'user', 'district'
        ).filter(user=user, role=role, is_active=True).first()
        if assignment is None:
            return None

        cls._write_active(assignment, False, performed_by, reason, metadata)
        cls._invalidate_now_and_on_commit(user.pk)
        return assignment

    @classmethod
    def _write_active(cls, assignment, active, performed_by, reason, metadata=None):
        assignment.is_active = active
        assignment.save(update_fields=['is_active', 'updated_at'])

        RoleAuditLog.record(
            'activated' if active else 'deactivated',
            user=assignment.user,
            old_role='' if active else assignment.role,
            new_role=assignment.role if active else '',
            performed_by=performed_by,
            reason=reason,
            district=assignment.district,
            target_id=assignment.id,
            metadata=metadata,
        )
