"""
Custom DRF authentication classes.
"""
from rest_framework.authentication import BaseAuthentication


class MiddlewareAuthentication(BaseAuthentication):
    """
    DRF authentication class that trusts the user resolved by Django middleware.

    Identity is established upstream (Django's AuthenticationMiddleware with
    the EmailAuthBackend, or a gateway-populated session). This class hands
    that user to DRF so permission classes and request.user agree.
    Deactivated accounts are treated as anonymous.
    """

    def authenticate(self, request):
        """
        Return the user from the middleware if present and active.

        Returns:
            tuple: (user, None) if user is authenticated, None otherwise
        """
        django_request = request._request
        user = getattr(django_request, 'user', None)

        if user is None or not user.is_authenticated:
            return None
        if not getattr(user, 'is_active', True):
            return None

        return (user, None)
