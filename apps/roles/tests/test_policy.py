"""
Tests for the role catalog, RoleHierarchy and ApprovalPolicyResolver.
"""
import pytest
from hypothesis import given, strategies as st

from apps.core.exceptions import ConfigurationError
from apps.roles.policy import (
    ROLE_CATALOG, ApprovalPolicyResolver, Role, RoleDefinition, RoleHierarchy,
    approval_policy_resolver, role_hierarchy,
)

ALL_ROLES = [role.value for role in Role]
roles = st.sampled_from(ALL_ROLES)


EXPECTED_TARGETS = {
    'resident': {'community_leader', 'service_provider', 'facility_manager', 'security'},
    'community_leader': {'community_admin'},
    'service_provider': {'facility_manager'},
    'facility_manager': {'community_admin'},
    'security': {'community_admin'},
    'community_admin': {'district_coordinator'},
    'district_coordinator': {'state_admin'},
    'state_admin': {'admin'},
    'admin': set(),
}

EXPECTED_APPROVERS = {
    'resident': 'community_admin',
    'community_leader': 'community_admin',
    'service_provider': 'community_admin',
    'facility_manager': 'community_admin',
    'security': 'district_coordinator',
    'community_admin': 'district_coordinator',
    'district_coordinator': 'state_admin',
    'state_admin': 'admin',
    'admin': 'admin',
}


class TestRoleHierarchy:
    """Test authority levels and the escalation graph."""

    def test_catalog_covers_every_role(self):
        assert set(ROLE_CATALOG) == set(ALL_ROLES)

    @pytest.mark.parametrize('role,targets', sorted(EXPECTED_TARGETS.items()))
    def test_available_targets_exact(self, role, targets):
        assert set(role_hierarchy.available_targets(role)) == targets

    def test_escalation_is_not_transitive(self):
        """resident -> community_leader -> community_admin does not make community_admin reachable."""
        assert not role_hierarchy.is_allowed_transition('resident', 'community_admin')
        assert role_hierarchy.is_allowed_transition('community_leader', 'community_admin')

    def test_admin_has_no_targets(self):
        assert role_hierarchy.available_targets('admin') == frozenset()

    def test_levels(self):
        assert role_hierarchy.level('resident') == 1
        assert role_hierarchy.level('community_admin') == 8
        assert role_hierarchy.level('admin') == 11

    def test_permission_levels(self):
        assert role_hierarchy.permission_level('resident') == 'limited_access'
        assert role_hierarchy.permission_level('security') == 'standard_access'
        assert role_hierarchy.permission_level('state_admin') == 'full_access'

    def test_outranks_is_strict(self):
        assert role_hierarchy.outranks('district_coordinator', 'community_admin')
        assert not role_hierarchy.outranks('community_admin', 'community_admin')
        assert not role_hierarchy.outranks('resident', 'security')

    def test_primary_role_picks_highest_level(self):
        assert role_hierarchy.primary_role(['resident', 'security', 'community_leader']) == 'security'

    def test_primary_role_defaults_to_resident(self):
        assert role_hierarchy.primary_role([]) == 'resident'

    def test_roles_ordered_by_level(self):
        levels = [definition.level for definition in role_hierarchy.roles()]
        assert levels == sorted(levels)

    def test_unknown_role_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            role_hierarchy.level('janitor')
        assert exc_info.value.details['role'] == 'janitor'

    def test_missing_catalog_entry_is_configuration_error(self):
        """A catalog that lost a role fails loudly instead of defaulting."""
        partial = {role: d for role, d in ROLE_CATALOG.items() if role != 'security'}
        hierarchy = RoleHierarchy(partial)
        with pytest.raises(ConfigurationError):
            hierarchy.available_targets('security')

    @given(roles)
    def test_targets_are_catalog_roles(self, role):
        assert set(role_hierarchy.available_targets(role)) <= set(ALL_ROLES)

    @given(roles, roles)
    def test_is_allowed_transition_matches_table(self, current, requested):
        expected = requested in EXPECTED_TARGETS[current]
        assert role_hierarchy.is_allowed_transition(current, requested) is expected


class TestApprovalPolicyResolver:
    """Test approver and requirement resolution."""

    @pytest.mark.parametrize('requested,approver', sorted(EXPECTED_APPROVERS.items()))
    def test_required_approver(self, requested, approver):
        policy = approval_policy_resolver.resolve('resident', requested)
        assert policy.required_approver_role == approver

    def test_resident_to_community_leader(self):
        policy = approval_policy_resolver.resolve('resident', 'community_leader')
        assert policy.required_approver_role == 'community_admin'
        assert policy.approval_requirements == ('community_voting',)

    def test_resident_to_security(self):
        policy = approval_policy_resolver.resolve('resident', 'security')
        assert policy.required_approver_role == 'district_coordinator'
        assert policy.approval_requirements == ('background_check', 'interview_process')

    def test_working_role_adds_performance_evaluation(self):
        policy = approval_policy_resolver.resolve('community_leader', 'community_admin')
        assert policy.required_approver_role == 'district_coordinator'
        assert policy.approval_requirements == (
            'community_voting', 'interview_process', 'performance_evaluation'
        )

    def test_state_admin_to_admin(self):
        policy = approval_policy_resolver.resolve('state_admin', 'admin')
        assert policy.required_approver_role == 'admin'
        assert 'multi_level_approval' in policy.approval_requirements
        assert policy.approval_requirements[-1] == 'performance_evaluation'

    def test_unknown_current_role(self):
        with pytest.raises(ConfigurationError):
            approval_policy_resolver.resolve('janitor', 'community_leader')

    def test_unknown_requested_role(self):
        with pytest.raises(ConfigurationError):
            approval_policy_resolver.resolve('resident', 'janitor')

    def test_duplicate_requirements_collapse(self):
        catalog = dict(ROLE_CATALOG)
        catalog['community_admin'] = RoleDefinition(
            role='community_admin',
            level=8,
            permission_level='full_access',
            targets=frozenset(),
            approver='district_coordinator',
            requirements=('performance_evaluation', 'community_voting'),
        )
        policy = ApprovalPolicyResolver(catalog).resolve('security', 'community_admin')
        assert policy.approval_requirements == ('performance_evaluation', 'community_voting')

    @given(roles, roles)
    def test_resolve_is_deterministic(self, current, requested):
        first = approval_policy_resolver.resolve(current, requested)
        second = approval_policy_resolver.resolve(current, requested)
        assert first == second

    @given(roles, roles)
    def test_requirements_are_unique_and_known(self, current, requested):
        policy = approval_policy_resolver.resolve(current, requested)
        requirements = policy.approval_requirements
        assert len(requirements) == len(set(requirements))
        assert policy.required_approver_role in ALL_ROLES

    @given(roles, roles)
    def test_performance_evaluation_only_when_leaving_working_role(self, current, requested):
        policy = approval_policy_resolver.resolve(current, requested)
        assert ('performance_evaluation' in policy.approval_requirements) is (current != 'resident')
