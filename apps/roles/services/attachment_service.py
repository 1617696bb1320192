"""
Supporting-document handling for role change requests.

Each file is validated locally (type allow-list, size ceiling) and only then
handed to blob storage. Uploads run concurrently, one task per file, and a
failing file never affects the others: the caller gets the references that
were stored plus a per-file list of failures.
"""
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings

from apps.roles.storage import AttachmentStorage

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    'application/pdf': 'pdf',
    'application/msword': 'doc',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document': 'docx',
    'image/jpeg': 'jpeg',
    'image/png': 'png',
}
ALLOWED_EXTENSIONS = {
    'pdf': 'pdf',
    'doc': 'doc',
    'docx': 'docx',
    'jpg': 'jpeg',
    'jpeg': 'jpeg',
    'png': 'png',
}
GENERIC_CONTENT_TYPES = {'', 'application/octet-stream'}


@dataclass(frozen=True)
class AttachmentFailure:
    filename: str
    code: str
    message: str
    retryable: bool = False

    def as_dict(self):
        return {
            'filename': self.filename,
            'code': self.code,
            'message': self.message,
            'retryable': self.retryable,
        }


@dataclass
class AttachmentBatchResult:
    stored: List[str] = field(default_factory=list)
    failures: List[AttachmentFailure] = field(default_factory=list)


class AttachmentService:
    """Validates and stores role request attachments."""

    def __init__(self, storage: Optional[AttachmentStorage] = None, max_bytes=None, max_workers=None):
        self.storage = storage or AttachmentStorage()
        self.max_bytes = max_bytes or settings.ROLE_ATTACHMENT_MAX_BYTES
        self.max_workers = max_workers or settings.ROLE_ATTACHMENT_MAX_WORKERS

    def check(self, upload) -> Optional[AttachmentFailure]:
        """Return the reason upload is unacceptable, or None when it is fine."""
        name = getattr(upload, 'name', None) or 'attachment'
        kind = self.detect_type(upload)
        if kind is None:
            return AttachmentFailure(
                filename=name,
                code='unsupported_type',
                message="Only PDF, DOC, DOCX, JPEG and PNG files are accepted",
            )

        size = getattr(upload, 'size', None)
        if size is None:
            return AttachmentFailure(name, 'unknown_size', "File size could not be determined")
        if size == 0:
            return AttachmentFailure(name, 'empty_file', "File is empty")
        if size > self.max_bytes:
            return AttachmentFailure(
                filename=name,
                code='file_too_large',
                message=f"File exceeds the {self.max_bytes // (1024 * 1024)} MB limit",
            )
        return None

    @staticmethod
    def detect_type(upload) -> Optional[str]:
        """
        Allowed document kind of upload (pdf, doc, docx, jpeg, png) or None.

        The declared content type decides; generic or missing content types
        fall back to the file extension.
        """
        content_type = (getattr(upload, 'content_type', None) or '').split(';')[0].strip().lower()
        if content_type not in GENERIC_CONTENT_TYPES:
            return ALLOWED_CONTENT_TYPES.get(content_type)

        extension = os.path.splitext(getattr(upload, 'name', '') or '')[1].lower().lstrip('.')
        return ALLOWED_EXTENSIONS.get(extension)

    def store_all(self, owner_id, files, timeout=None) -> AttachmentBatchResult:
        """
        Validate every file and upload the valid ones concurrently.

        Invalid files are never sent to storage. A storage error or a
        timeout fails only that file and is flagged retryable.
        """
        result = AttachmentBatchResult()
        valid = []
        for upload in files or []:
            failure = self.check(upload)
            if failure is not None:
                logger.info(
                    "Role request attachment rejected",
                    extra={'owner_id': str(owner_id), 'attachment_name': failure.filename, 'code': failure.code}
                )
                result.failures.append(failure)
            else:
                valid.append(upload)

        if not valid:
            return result

        if timeout is None:
            timeout = getattr(settings, 'ROLE_ATTACHMENT_UPLOAD_TIMEOUT', None)
        deadline = time.monotonic() + timeout if timeout else None

        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(valid)))
        try:
            futures = [
                (upload, executor.submit(self.storage.store, owner_id, upload.name, upload))
                for upload in valid
            ]
            for upload, future in futures:
                remaining = max(deadline - time.monotonic(), 0) if deadline else None
                try:
                    result.stored.append(future.result(timeout=remaining))
                except FutureTimeoutError:
                    future.cancel()
                    logger.warning(
                        "Role request attachment upload timed out",
                        extra={'owner_id': str(owner_id), 'attachment_name': upload.name, 'timeout_seconds': timeout}
                    )
                    result.failures.append(AttachmentFailure(
                        upload.name, 'storage_timeout', "Upload timed out, try again", retryable=True
                    ))
                except Exception as e:  # storage backends raise their own errors
                    logger.error(
                        "Role request attachment upload failed",
                        extra={'owner_id': str(owner_id), 'attachment_name': upload.name, 'error': str(e)},
                        exc_info=True
                    )
                    result.failures.append(AttachmentFailure(
                        upload.name, 'storage_error', "Upload failed, try again", retryable=True
                    ))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return result
