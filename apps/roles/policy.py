"""
Role catalog and the policy components derived from it.

ROLE_CATALOG is the single table describing every role: authority level,
permission level label, self-service escalation targets, the approver
role for requests into it, and the base approval requirements. Both
RoleHierarchy and ApprovalPolicyResolver read from it.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Mapping, Tuple

from django.db import models

from apps.core.exceptions import ConfigurationError
from apps.core.logging import SecurityLogger


class Role(models.TextChoices):
    RESIDENT = 'resident', 'Resident'
    COMMUNITY_LEADER = 'community_leader', 'Community Leader'
    SERVICE_PROVIDER = 'service_provider', 'Service Provider'
    FACILITY_MANAGER = 'facility_manager', 'Facility Manager'
    SECURITY = 'security', 'Security'
    COMMUNITY_ADMIN = 'community_admin', 'Community Admin'
    DISTRICT_COORDINATOR = 'district_coordinator', 'District Coordinator'
    STATE_ADMIN = 'state_admin', 'State Admin'
    ADMIN = 'admin', 'Admin'


class PermissionLevel(models.TextChoices):
    LIMITED = 'limited_access', 'Limited Access'
    STANDARD = 'standard_access', 'Standard Access'
    FULL = 'full_access', 'Full Access'


class ApprovalRequirement(models.TextChoices):
    COMMUNITY_VOTING = 'community_voting', 'Community Voting Required'
    BUSINESS_VERIFICATION = 'business_verification', 'Business Verification Required'
    INTERVIEW_PROCESS = 'interview_process', 'Interview Process Required'
    BACKGROUND_CHECK = 'background_check', 'Background Check Required'
    PERFORMANCE_EVALUATION = 'performance_evaluation', 'Performance Evaluation Required'
    MULTI_LEVEL_APPROVAL = 'multi_level_approval', 'Multi-Level Approval Required'


@dataclass(frozen=True)
class RoleDefinition:
    role: str
    level: int
    permission_level: str
    targets: FrozenSet[str]
    approver: str
    requirements: Tuple[str, ...] = ()


def _define(role, level, permission_level, targets, approver, requirements=()):
    return RoleDefinition(
        role=role,
        level=level,
        permission_level=permission_level,
        targets=frozenset(targets),
        approver=approver,
        requirements=tuple(requirements),
    )


R = Role
Req = ApprovalRequirement

ROLE_CATALOG: Mapping[str, RoleDefinition] = {
    d.role: d for d in (
        _define(R.RESIDENT, 1, PermissionLevel.LIMITED,
                [R.COMMUNITY_LEADER, R.SERVICE_PROVIDER, R.FACILITY_MANAGER, R.SECURITY],
                R.COMMUNITY_ADMIN),
        _define(R.COMMUNITY_LEADER, 3, PermissionLevel.LIMITED,
                [R.COMMUNITY_ADMIN],
                R.COMMUNITY_ADMIN, [Req.COMMUNITY_VOTING]),
        _define(R.SERVICE_PROVIDER, 4, PermissionLevel.LIMITED,
                [R.FACILITY_MANAGER],
                R.COMMUNITY_ADMIN, [Req.BUSINESS_VERIFICATION]),
        _define(R.SECURITY, 6, PermissionLevel.STANDARD,
                [R.COMMUNITY_ADMIN],
                R.DISTRICT_COORDINATOR, [Req.BACKGROUND_CHECK, Req.INTERVIEW_PROCESS]),
        _define(R.FACILITY_MANAGER, 7, PermissionLevel.STANDARD,
                [R.COMMUNITY_ADMIN],
                R.COMMUNITY_ADMIN, [Req.INTERVIEW_PROCESS]),
        _define(R.COMMUNITY_ADMIN, 8, PermissionLevel.FULL,
                [R.DISTRICT_COORDINATOR],
                R.DISTRICT_COORDINATOR, [Req.COMMUNITY_VOTING, Req.INTERVIEW_PROCESS]),
        _define(R.DISTRICT_COORDINATOR, 9, PermissionLevel.FULL,
                [R.STATE_ADMIN],
                R.STATE_ADMIN, [Req.BACKGROUND_CHECK, Req.MULTI_LEVEL_APPROVAL]),
        _define(R.STATE_ADMIN, 10, PermissionLevel.FULL,
                [R.ADMIN],
                R.ADMIN, [Req.BACKGROUND_CHECK, Req.MULTI_LEVEL_APPROVAL]),
        _define(R.ADMIN, 11, PermissionLevel.FULL,
                [],
                R.ADMIN, [Req.BACKGROUND_CHECK, Req.MULTI_LEVEL_APPROVAL]),
    )
}

del R, Req


def _lookup(role, catalog, operation):
    try:
        return catalog[role]
    except (KeyError, TypeError):
        SecurityLogger.log_role_catalog_error(role, operation)
        raise ConfigurationError(
            f"Role '{role}' is not in the role catalog",
            details={'role': str(role), 'operation': operation}
        )


class RoleHierarchy:
    """
    Authority levels and the self-service escalation graph.

    The escalation graph is explicit and non-transitive: a resident may ask
    for community_leader but not for community_admin, even though a
    community_leader may.
    """

    def __init__(self, catalog: Mapping[str, RoleDefinition] = None):
        self.catalog = catalog if catalog is not None else ROLE_CATALOG

    def definition(self, role) -> RoleDefinition:
        return _lookup(role, self.catalog, 'role_hierarchy')

    def level(self, role) -> int:
        return self.definition(role).level

    def permission_level(self, role) -> str:
        return self.definition(role).permission_level

    def available_targets(self, role) -> FrozenSet[str]:
        return self.definition(role).targets

    def is_allowed_transition(self, current_role, requested_role) -> bool:
        self.definition(requested_role)
        return requested_role in self.available_targets(current_role)

    def outranks(self, role, other) -> bool:
        """True when role has strictly more authority than other."""
        return self.level(role) > self.level(other)

    def at_least(self, role, other) -> bool:
        return self.level(role) >= self.level(other)

    def primary_role(self, roles: Iterable[str]) -> str:
        """
        The highest-level role of the given set, or resident when empty.

        Used as the "current role" of a user holding several roles.
        """
        best = None
        for role in roles:
            if best is None or self.level(role) > self.level(best):
                best = role
        return best if best is not None else Role.RESIDENT

    def roles(self):
        """All catalog roles ordered by ascending level."""
        return sorted(self.catalog.values(), key=lambda d: d.level)


@dataclass(frozen=True)
class ApprovalPolicy:
    required_approver_role: str
    approval_requirements: Tuple[str, ...] = field(default_factory=tuple)


class ApprovalPolicyResolver:
    """
    Computes who must approve a role change and which out-of-band checks
    are required.

    resolve() is pure and deterministic for a given catalog. Moving out of
    a working role (anything other than resident) additionally requires a
    performance evaluation.
    """

    def __init__(self, catalog: Mapping[str, RoleDefinition] = None):
        self.catalog = catalog if catalog is not None else ROLE_CATALOG

    def resolve(self, current_role, requested_role) -> ApprovalPolicy:
        _lookup(current_role, self.catalog, 'approval_policy')
        requested = _lookup(requested_role, self.catalog, 'approval_policy')

        requirements = list(requested.requirements)
        if current_role != Role.RESIDENT:
            requirements.append(ApprovalRequirement.PERFORMANCE_EVALUATION)

        # Stable order, no duplicates
        requirements = tuple(dict.fromkeys(str(r) for r in requirements))

        return ApprovalPolicy(
            required_approver_role=str(requested.approver),
            approval_requirements=requirements,
        )


role_hierarchy = RoleHierarchy()
approval_policy_resolver = ApprovalPolicyResolver()
