"""
Pytest configuration and fixtures.
"""
import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def clear_cache():
    """Active-role sets are cached; start every test from an empty cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


def _make_user(email, **extra):
    from apps.accounts.models import User
    return User.objects.create_user(email=email, password='s3cure-Passw0rd', **extra)


@pytest.fixture
def make_user(db):
    """Factory creating users with unique emails."""
    counter = {'n': 0}

    def factory(email=None, **extra):
        counter['n'] += 1
        return _make_user(email or f"user{counter['n']}@example.com", **extra)

    return factory


@pytest.fixture
def resident(db):
    """User with no role assignments (implicit resident)."""
    return _make_user('resident@example.com', first_name='Ada', last_name='Obi')


@pytest.fixture
def superuser(db):
    return _make_user('root@example.com', is_superuser=True)


@pytest.fixture
def district(db):
    """Create a test district."""
    from apps.districts.models import District
    return District.objects.create(name='Ikeja', code='ikj', state='Lagos')


@pytest.fixture
def other_district(db):
    """Create another district for scoping tests."""
    from apps.districts.models import District
    return District.objects.create(name='Garki', code='grk', state='FCT')


@pytest.fixture
def grant(db):
    """Grant a role as the system: grant(user, role, district=None)."""
    from apps.roles.services.assignment_service import RoleAssignmentService

    def _grant(user, role, district=None):
        return RoleAssignmentService.assign(user, role, district=district)

    return _grant


@pytest.fixture
def community_admin(db, make_user, grant):
    user = make_user('cadmin@example.com')
    grant(user, 'community_admin')
    return user


@pytest.fixture
def district_coordinator(db, make_user, grant):
    user = make_user('coordinator@example.com')
    grant(user, 'district_coordinator')
    return user


@pytest.fixture
def modules(db):
    """Create the system modules used in tests."""
    from apps.roles.models import SystemModule
    return {
        name: SystemModule.objects.create(name=name, display_name=name.replace('_', ' ').title())
        for name in ('facilities', 'announcements', 'role_management')
    }
