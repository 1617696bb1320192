"""
Tests for the db_timeout transaction helper.
"""
import pytest
from django.db import OperationalError

from apps.core.db import db_timeout
from apps.core.exceptions import RetryableError
from apps.districts.models import District


@pytest.mark.django_db
class TestDbTimeout:

    def test_commits_block(self):
        with db_timeout(1.0, operation='test.create'):
            District.objects.create(name='Surulere', code='sur')

        assert District.objects.filter(code='SUR').exists()

    def test_error_rolls_back_block(self):
        with pytest.raises(ValueError):
            with db_timeout(operation='test.rollback'):
                District.objects.create(name='Yaba', code='yab')
                raise ValueError("abort")

        assert not District.objects.filter(code='YAB').exists()

    def test_operational_error_is_retryable(self):
        with pytest.raises(RetryableError) as exc_info:
            with db_timeout(0.5, operation='test.timeout'):
                raise OperationalError("canceling statement due to statement timeout")

        assert exc_info.value.details == {'operation': 'test.timeout'}
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_other_platform_errors_propagate_unchanged(self):
        from apps.core.exceptions import ConflictError

        with pytest.raises(ConflictError):
            with db_timeout(operation='test.conflict'):
                raise ConflictError("stale")
