"""
Database helpers shared by the service layer.
"""
import logging
from contextlib import contextmanager

from django.conf import settings
from django.db import connection, transaction, OperationalError

from apps.core.exceptions import RetryableError

logger = logging.getLogger(__name__)


@contextmanager
def db_timeout(seconds=None, operation=None):
    """
    Run the enclosed block in a transaction bounded by a statement timeout.

    On PostgreSQL the timeout is applied with SET LOCAL so it expires with
    the transaction. Other backends run without a server-side limit.
    OperationalError (statement timeout, lock timeout, lost connection)
    surfaces as RetryableError; the transaction is rolled back first.

    Usage:
        with db_timeout(2.0, operation='role_request.review'):
            ...
    """
    if seconds is None:
        seconds = getattr(settings, 'ROLE_DB_TIMEOUT_SECONDS', None)

    try:
        with transaction.atomic():
            if seconds and connection.vendor == 'postgresql':
                with connection.cursor() as cursor:
                    cursor.execute(
                        "SET LOCAL statement_timeout = %s",
                        [int(float(seconds) * 1000)]
                    )
            yield
    except OperationalError as e:
        logger.warning(
            "Database operation failed, caller may retry",
            extra={
                'operation': operation,
                'timeout_seconds': seconds,
                'error': str(e),
            }
        )
        raise RetryableError(
            "Database operation timed out or was interrupted",
            details={'operation': operation}
        ) from e
