from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """Validate settings the role services depend on."""
        self._validate_role_settings()

    def _validate_role_settings(self):
        max_bytes = getattr(settings, 'ROLE_ATTACHMENT_MAX_BYTES', 0)
        if max_bytes <= 0:
            raise ImproperlyConfigured(
                "ROLE_ATTACHMENT_MAX_BYTES must be a positive number of bytes."
            )

        workers = getattr(settings, 'ROLE_ATTACHMENT_MAX_WORKERS', 0)
        if workers < 1:
            raise ImproperlyConfigured(
                "ROLE_ATTACHMENT_MAX_WORKERS must be at least 1."
            )

        if not settings.DEBUG and not getattr(settings, 'SECRET_KEY', None):
            raise ImproperlyConfigured("SECRET_KEY must be set in environment variables.")
