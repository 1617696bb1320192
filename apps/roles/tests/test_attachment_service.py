"""
Tests for AttachmentService validation and concurrent storage.
"""
import threading

import pytest
from django.core.files.storage import InMemoryStorage
from django.core.files.uploadedfile import SimpleUploadedFile

from apps.roles.services.attachment_service import AttachmentService
from apps.roles.storage import AttachmentStorage

MB = 1024 * 1024


def upload(name, content_type='application/pdf', size=1024):
    return SimpleUploadedFile(name, b'x' * size, content_type=content_type)


class BrokenStorage(AttachmentStorage):
    """Fails for one filename, stores everything else in memory."""

    def __init__(self, failing_name):
        super().__init__(InMemoryStorage())
        self.failing_name = failing_name

    def store(self, owner_id, filename, content):
        if filename == self.failing_name:
            raise OSError("bucket unavailable")
        return super().store(owner_id, filename, content)


class BlockingStorage(AttachmentStorage):
    """Never finishes storing until released."""

    def __init__(self):
        super().__init__(InMemoryStorage())
        self.release = threading.Event()

    def store(self, owner_id, filename, content):
        self.release.wait(5)
        return super().store(owner_id, filename, content)


@pytest.fixture
def service():
    return AttachmentService(storage=AttachmentStorage(InMemoryStorage()), max_bytes=10 * MB, max_workers=4)


class TestCheck:

    def test_accepts_allowed_types(self, service):
        for name, content_type in [
            ('id.pdf', 'application/pdf'),
            ('cv.doc', 'application/msword'),
            ('cv.docx', 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'),
            ('photo.jpg', 'image/jpeg'),
            ('scan.png', 'image/png'),
        ]:
            assert service.check(upload(name, content_type)) is None

    def test_rejects_unsupported_type(self, service):
        failure = service.check(upload('run.exe', 'application/x-msdownload'))
        assert failure.code == 'unsupported_type'
        assert not failure.retryable

    def test_declared_type_wins_over_extension(self, service):
        failure = service.check(upload('notes.pdf', 'text/plain'))
        assert failure.code == 'unsupported_type'

    def test_generic_type_falls_back_to_extension(self, service):
        assert service.check(upload('scan.PNG', 'application/octet-stream')) is None
        assert service.check(upload('notes.txt', 'application/octet-stream')).code == 'unsupported_type'

    def test_rejects_empty_file(self, service):
        assert service.check(upload('empty.pdf', size=0)).code == 'empty_file'

    def test_rejects_oversized_file(self, service):
        failure = service.check(upload('big.pdf', size=10 * MB + 1))
        assert failure.code == 'file_too_large'
        assert '10 MB' in failure.message

    def test_exact_limit_is_accepted(self, service):
        assert service.check(upload('edge.pdf', size=10 * MB)) is None


class TestStoreAll:

    def test_oversized_file_does_not_block_valid_ones(self, service):
        files = [
            upload('a.pdf'),
            upload('b.png', 'image/png'),
            upload('huge.pdf', size=11 * MB),
            upload('c.jpg', 'image/jpeg'),
        ]

        result = service.store_all('owner-1', files)

        assert len(result.stored) == 3
        assert [f.filename for f in result.failures] == ['huge.pdf']
        assert result.failures[0].code == 'file_too_large'
        for reference in result.stored:
            assert reference.startswith('role-requests/owner-1/')
            assert service.storage.backend.exists(reference)

    def test_no_files(self, service):
        result = service.store_all('owner-1', [])
        assert result.stored == []
        assert result.failures == []

    def test_invalid_files_never_reach_storage(self):
        storage = BrokenStorage(failing_name='never-called.exe')
        service = AttachmentService(storage=storage, max_bytes=MB)

        result = service.store_all('owner-1', [upload('never-called.exe', 'application/x-msdownload')])

        assert result.failures[0].code == 'unsupported_type'
        assert result.stored == []

    def test_storage_error_fails_only_that_file(self):
        service = AttachmentService(storage=BrokenStorage(failing_name='bad.pdf'), max_bytes=MB)

        result = service.store_all('owner-1', [upload('good.pdf'), upload('bad.pdf')])

        assert len(result.stored) == 1
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.filename == 'bad.pdf'
        assert failure.code == 'storage_error'
        assert failure.retryable

    def test_timeout_is_retryable(self):
        storage = BlockingStorage()
        service = AttachmentService(storage=storage, max_bytes=MB)
        try:
            result = service.store_all('owner-1', [upload('slow.pdf')], timeout=0.05)
        finally:
            storage.release.set()

        assert result.stored == []
        assert result.failures[0].code == 'storage_timeout'
        assert result.failures[0].retryable

    def test_failure_as_dict(self, service):
        result = service.store_all('owner-1', [upload('empty.pdf', size=0)])
        assert result.failures[0].as_dict() == {
            'filename': 'empty.pdf',
            'code': 'empty_file',
            'message': 'File is empty',
            'retryable': False,
        }


class TestAttachmentStorage:

    def test_path_is_sanitized(self):
        storage = AttachmentStorage(InMemoryStorage())
        path = storage.build_path('owner-1', '../../etc/pass wd.pdf')
        assert path.startswith('role-requests/owner-1/')
        assert '..' not in path
        assert path.endswith('_pass_wd.pdf')

    def test_delete(self):
        storage = AttachmentStorage(InMemoryStorage())
        reference = storage.store('owner-1', 'doc.pdf', upload('doc.pdf'))
        storage.delete(reference)
        assert not storage.backend.exists(reference)
