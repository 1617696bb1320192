"""
Core middleware for request processing.
"""
import threading
import uuid
import logging
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

_request_context = threading.local()


class RequestIDMiddleware(MiddlewareMixin):
    """
    Inject a unique request_id into each request for tracing.
    The request_id is added to the request object and to log records.
    """

    def process_request(self, request):
        """Generate and attach request_id to the request."""
        request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        request.request_id = request_id
        _request_context.request_id = request_id
        _request_context.district_id = None

    def process_response(self, request, response):
        """Add request_id to response headers."""
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id
        _request_context.request_id = None
        _request_context.district_id = None
        return response


def set_district_context(district_id):
    """Record the district of the current request for log records."""
    _request_context.district_id = district_id


class LoggingFilter(logging.Filter):
    """
    Add request_id and district_id of the current request to log records.
    """

    def filter(self, record):
        request_id = getattr(_request_context, 'request_id', None)
        if request_id and not hasattr(record, 'request_id'):
            record.request_id = request_id

        district_id = getattr(_request_context, 'district_id', None)
        if district_id and not hasattr(record, 'district_id'):
            record.district_id = district_id

        return True
