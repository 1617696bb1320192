"""
Blob-storage adapter for role request attachments.

Backed by Django's default_storage, so any configured storage backend
(filesystem, S3 via django-storages, in-memory in tests) works unchanged.
"""
import logging
import os
import uuid

from django.core.files.storage import default_storage
from django.utils.text import get_valid_filename

logger = logging.getLogger(__name__)


class AttachmentStorage:
    """Stores validated attachment bytes and returns a storage reference."""

    PREFIX = 'role-requests'

    def __init__(self, storage=None):
        self.storage = storage

    @property
    def backend(self):
        return self.storage if self.storage is not None else default_storage

    def build_path(self, owner_id, filename):
        safe_name = get_valid_filename(os.path.basename(filename)) or 'attachment'
        return os.path.join(self.PREFIX, str(owner_id), f"{uuid.uuid4().hex}_{safe_name}")

    def store(self, owner_id, filename, content):
        """
        Save content and return the reference to keep on the request.

        content is a Django File (UploadedFile, ContentFile).
        """
        path = self.build_path(owner_id, filename)
        if hasattr(content, 'seek'):
            content.seek(0)
        reference = self.backend.save(path, content)
        logger.info(
            "Role request attachment stored",
            extra={'owner_id': str(owner_id), 'reference': reference}
        )
        return reference

    def delete(self, reference):
        if self.backend.exists(reference):
            self.backend.delete(reference)
