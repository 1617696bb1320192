"""
District context middleware.

Resolves the optional X-DISTRICT-ID header to an active District and
attaches it to the request as request.district (None when absent).
"""
import logging
import uuid

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from apps.core.middleware import set_district_context
from .models import District

logger = logging.getLogger(__name__)


class DistrictContextMiddleware(MiddlewareMixin):
    """
    Extract and validate district context from request headers.

    Public paths skip resolution. An unknown or inactive district is
    rejected with 404 so a caller never silently falls back to
    platform-wide scope.
    """

    PUBLIC_PATHS = [
        '/v1/health',
        '/schema',
        '/admin/',
    ]

    def process_request(self, request):
        request.district = None

        if self._is_public_path(request.path):
            return None

        district_id = request.headers.get('X-DISTRICT-ID')
        if not district_id:
            return None

        try:
            uuid.UUID(str(district_id))
        except ValueError:
            return self._error_response(
                'INVALID_DISTRICT',
                'X-DISTRICT-ID must be a UUID',
                status=400
            )

        try:
            district = District.objects.active().get(id=district_id)
        except (District.DoesNotExist, DjangoValidationError):
            logger.warning(
                f"Unknown district ID: {district_id}",
                extra={'request_id': getattr(request, 'request_id', None)}
            )
            return self._error_response(
                'DISTRICT_NOT_FOUND',
                'District not found or inactive',
                status=404
            )

        request.district = district
        set_district_context(str(district.id))
        return None

    def _is_public_path(self, path):
        return any(path.startswith(public_path) for public_path in self.PUBLIC_PATHS)

    def _error_response(self, code, message, status=400):
        """Generate an error response in the API error format."""
        return JsonResponse(
            {'error': message, 'code': code, 'details': {}},
            status=status
        )
