"""
Tests for structured logging and PII masking.
"""
import json
import logging
from unittest.mock import patch

from django.test import SimpleTestCase

from apps.core.logging import PIIMasker, JSONFormatter, SecurityLogger


class PIIMaskerTestCase(SimpleTestCase):
    """Test PII masking functionality."""

    def test_mask_phone_numbers(self):
        masked = PIIMasker.mask_phone("Call me at +2348012345678")

        self.assertIn("+23*", masked)
        self.assertNotIn("+2348012345678", masked)

    def test_mask_email_addresses(self):
        masked = PIIMasker.mask_email("Contact user@example.com or admin@test.org")

        self.assertIn("u***@example.com", masked)
        self.assertIn("a****@test.org", masked)
        self.assertNotIn("user@example.com", masked)

    def test_mask_secrets(self):
        masked = PIIMasker.mask_secrets('api_key: "sk_live_abc123" and token="bearer_xyz789"')

        self.assertIn("api_key: ********", masked)
        self.assertNotIn("sk_live_abc123", masked)
        self.assertNotIn("bearer_xyz789", masked)

    def test_mask_dict_sensitive_fields(self):
        data = {
            'role': 'security',
            'email': 'guard@example.com',
            'password': 'hunter2',
            'nested': {'phone': '+2348012345678', 'note': 'mail me at guard@example.com'},
            'items': [{'secret': 'x'}, 'plain'],
        }

        masked = PIIMasker.mask_dict(data)

        self.assertEqual(masked['role'], 'security')
        self.assertEqual(masked['email'], '********')
        self.assertEqual(masked['password'], '********')
        self.assertEqual(masked['nested']['phone'], '********')
        self.assertNotIn('guard@example.com', masked['nested']['note'])
        self.assertEqual(masked['items'][0]['secret'], '********')
        self.assertEqual(masked['items'][1], 'plain')

    def test_non_strings_pass_through(self):
        self.assertEqual(PIIMasker.mask_text(42), 42)
        self.assertIsNone(PIIMasker.mask_dict(None))


class JSONFormatterTestCase(SimpleTestCase):
    """Test the JSON log formatter."""

    def make_record(self, msg, **extra):
        record = logging.LogRecord(
            name='apps.roles', level=logging.INFO, pathname=__file__, lineno=10,
            msg=msg, args=(), exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        payload = json.loads(JSONFormatter().format(self.make_record("Role assigned")))

        self.assertEqual(payload['level'], 'INFO')
        self.assertEqual(payload['logger'], 'apps.roles')
        self.assertEqual(payload['message'], 'Role assigned')
        self.assertTrue(payload['timestamp'].endswith('Z'))

    def test_extras_are_included_and_masked(self):
        record = self.make_record(
            "Grant refused for bob@example.com",
            request_id='req-1',
            district_id='d-1',
            role='security',
            details={'email': 'bob@example.com'},
        )

        payload = json.loads(JSONFormatter().format(record))

        self.assertEqual(payload['request_id'], 'req-1')
        self.assertEqual(payload['district_id'], 'd-1')
        self.assertEqual(payload['role'], 'security')
        self.assertEqual(payload['details'], {'email': '********'})
        self.assertNotIn('bob@example.com', payload['message'])

    def test_unserializable_extra_is_stringified(self):
        payload = json.loads(JSONFormatter().format(self.make_record("x", when=object())))
        self.assertIsInstance(payload['when'], str)

    def test_exception_info(self):
        try:
            raise ValueError("bad role")
        except ValueError:
            import sys
            record = self.make_record("failed")
            record.exc_info = sys.exc_info()

        payload = json.loads(JSONFormatter().format(record))

        self.assertEqual(payload['exception']['type'], 'ValueError')
        self.assertEqual(payload['exception']['message'], 'bad role')


class SecurityLoggerTestCase(SimpleTestCase):
    """Test security event logging."""

    def test_event_goes_to_security_logger(self):
        with self.assertLogs('security', level='WARNING') as logs:
            SecurityLogger.log_unauthorized_grant(None, 'admin', 'user-1')

        self.assertIn('unauthorized_role_grant', logs.output[0])
        self.assertEqual(logs.records[0].role, 'admin')

    @patch('apps.core.logging.sentry_sdk.capture_message')
    def test_critical_events_alert_sentry(self, capture_message):
        with self.assertLogs('security', level='ERROR'):
            SecurityLogger.log_four_eyes_violation('u-1', 'u-1', 'r-1')

        capture_message.assert_called_once()
        self.assertIn('four_eyes_violation', capture_message.call_args[0][0])

    @patch('apps.core.logging.sentry_sdk.capture_message')
    def test_non_critical_events_do_not_alert(self, capture_message):
        with self.assertLogs('security', level='WARNING'):
            SecurityLogger.log_event('permission_denied', user_id='u-1')

        capture_message.assert_not_called()
