"""
Media host adapter built on Django's storage API.
"""
from __future__ import annotations

import logging
import posixpath
from uuid import uuid4

from django.core.files.storage import default_storage

from shop.domain.exceptions import ExternalServiceFailure

logger = logging.getLogger(__name__)


class MediaStorage:
    """Uploads binary files and returns a public URL for them."""

    def __init__(self, storage=None):
        self.storage = storage or default_storage

    def upload(self, uploaded_file, folder: str) -> str:
        extension = posixpath.splitext(uploaded_file.name or "")[1].lower()
        name = posixpath.join(folder, f"{uuid4().hex}{extension}")
        try:
            stored_name = self.storage.save(name, uploaded_file)
            url = self.storage.url(stored_name)
        except OSError as e:
            logger.error("media_upload_failed", extra={"error": str(e)})
            raise ExternalServiceFailure("Failed to upload file") from e

        logger.info("media_uploaded", extra={"operation": "upload", "file_name": stored_name})
        return url
