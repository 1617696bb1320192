"""
Tests for the User model, its manager and the email backend.
"""
import pytest
from django.contrib.auth import authenticate

from apps.accounts.backends import EmailAuthBackend
from apps.accounts.models import User


@pytest.mark.django_db
class TestUserManager:

    def test_create_user_hashes_password(self):
        user = User.objects.create_user('ada@Example.COM', password='s3cure-Passw0rd')

        assert user.email == 'ada@example.com'
        assert user.password_hash != 's3cure-Passw0rd'
        assert user.check_password('s3cure-Passw0rd')
        assert not user.check_password('wrong')
        assert user.is_active
        assert not user.is_superuser

    def test_email_required(self):
        with pytest.raises(ValueError):
            User.objects.create_user('')

    def test_create_superuser(self):
        user = User.objects.create_superuser('ops@example.com', password='s3cure-Passw0rd')
        assert user.is_superuser
        assert user.is_staff

    def test_create_superuser_rejects_flag_override(self):
        with pytest.raises(ValueError):
            User.objects.create_superuser('ops@example.com', is_superuser=False)

    def test_by_email_ignores_case(self):
        user = User.objects.create_user('ada@example.com')
        assert User.objects.by_email('ADA@example.com') == user
        assert User.objects.by_email('nobody@example.com') is None

    def test_active(self):
        User.objects.create_user('on@example.com')
        User.objects.create_user('off@example.com', is_active=False)
        assert list(User.objects.active().values_list('email', flat=True)) == ['on@example.com']


@pytest.mark.django_db
class TestUser:

    def test_full_name_falls_back_to_email(self):
        assert User(email='x@example.com').get_full_name() == 'x@example.com'
        assert User(email='x@example.com', first_name='Ada', last_name='Obi').get_full_name() == 'Ada Obi'

    def test_auth_flags(self):
        user = User(email='x@example.com')
        assert user.is_authenticated
        assert not user.is_anonymous
        assert not user.has_perm('roles.view_roleauditlog')

    def test_session_hash_changes_with_password(self, resident):
        before = resident.get_session_auth_hash()
        resident.set_password('another-Passw0rd')
        assert resident.get_session_auth_hash() != before


@pytest.mark.django_db
class TestEmailAuthBackend:

    def test_authenticate(self, resident):
        assert authenticate(username='resident@example.com', password='s3cure-Passw0rd') == resident

    def test_wrong_password(self, resident):
        assert authenticate(username='resident@example.com', password='nope') is None

    def test_unknown_email(self, db):
        assert authenticate(username='ghost@example.com', password='whatever') is None

    def test_inactive_user(self, make_user):
        make_user('gone@example.com', is_active=False)
        assert authenticate(username='gone@example.com', password='s3cure-Passw0rd') is None

    def test_get_user(self, resident):
        backend = EmailAuthBackend()
        assert backend.get_user(resident.pk) == resident
        assert backend.get_user('00000000-0000-0000-0000-000000000000') is None
