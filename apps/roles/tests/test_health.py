"""
Tests for the role service readiness endpoint.
"""
from unittest.mock import patch

import pytest
from django.urls import reverse
from rest_framework.test import APIClient


@pytest.mark.django_db
class TestServiceHealthView:

    def test_ready(self, modules):
        response = APIClient().get(reverse('roles:service-health'))

        assert response.status_code == 200
        assert response.data == {
            'status': 'ok',
            'checks': {'database': 'ok', 'cache': 'ok', 'permission_matrix': 'ok'},
        }
        assert 'X-Request-ID' in response

    def test_unseeded_matrix_is_503(self):
        response = APIClient().get(reverse('roles:service-health'))

        assert response.status_code == 503
        assert response.data['status'] == 'degraded'
        assert response.data['checks']['permission_matrix'] == 'failing'
        assert response.data['checks']['database'] == 'ok'

    def test_inactive_role_management_module_is_503(self, modules):
        modules['role_management'].is_active = False
        modules['role_management'].save()

        response = APIClient().get(reverse('roles:service-health'))

        assert response.status_code == 503

    def test_cache_failure_is_503(self, modules):
        with patch('apps.roles.views.cache') as cache:
            cache.set.side_effect = ConnectionError("redis down")
            response = APIClient().get(reverse('roles:service-health'))

        assert response.status_code == 503
        assert response.data['checks']['cache'] == 'failing'
        assert response.data['checks']['permission_matrix'] == 'ok'

    def test_ignores_district_header(self, modules):
        response = APIClient().get(reverse('roles:service-health'), HTTP_X_DISTRICT_ID='garbage')
        assert response.status_code == 200
