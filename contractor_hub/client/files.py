# contractor_hub/client/files.py
import re
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .api import ApiClient, ApiError
from .cache import ResponseCache
from .notices import Notice
from ..services.storage import StorageBackend, StorageError, get_content_type

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "Are you sure you want to delete this file?"


@dataclass
class SelectedFile:
    filename: str
    content: bytes
    mimetype: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


def default_label(filename: str) -> str:
    """Filename without its last extension"""
    return re.sub(r'\.[^/.]+$', '', filename)


class FileUploadFlow:
    """
    Attach files to a job.

    The content goes to the injected StorageBackend; the server only gets a
    record of where it landed. Deletion asks the confirm callback first.
    """

    def __init__(self, api: ApiClient, cache: ResponseCache, storage: StorageBackend,
                 job_id: int, confirm: Callable[[str], bool], uploaded_by: Optional[str] = None):
        self.api = api
        self.cache = cache
        self.storage = storage
        self.job_id = job_id
        self.confirm = confirm
        self.uploaded_by = uploaded_by
        self.selected_file: Optional[SelectedFile] = None
        self.label = ""
        self.notices: List[Notice] = []

    @property
    def cache_key(self) -> str:
        return f"/api/jobs/{self.job_id}/files"

    def files(self) -> list:
        return self.cache.read(self.cache_key)

    def select_file(self, filename: str, content: bytes, mimetype: Optional[str] = None) -> None:
        self.selected_file = SelectedFile(filename, content, mimetype or get_content_type(filename))
        self.label = default_label(filename)

    def reset(self) -> None:
        self.selected_file = None
        self.label = ""

    def upload(self) -> Optional[dict]:
        """Store the selected file and record it; None when nothing was created"""
        selected = self.selected_file
        if not selected:
            return None

        try:
            key = self.storage.upload(selected.content, selected.filename, f"jobs/{self.job_id}")
        except StorageError as e:
            logger.error(f"Storage upload failed: {e}")
            self.notices.append(Notice("Upload failed", "The file could not be stored. Please try again.", "destructive"))
            return None

        payload = {
            'job_id': self.job_id,
            'url': self.storage.get_url(key),
            'filename': selected.filename,
            'filesize': selected.size,
            'mimetype': selected.mimetype,
            'label': self.label.strip() or selected.filename,
            'storage_key': key,
        }
        if self.uploaded_by:
            payload['uploaded_by'] = self.uploaded_by

        try:
            record = self.api.post("/api/files", payload)
        except ApiError as e:
            logger.error(f"Failed to record uploaded file: {e}")
            try:
                self.storage.delete(key)
            except StorageError as cleanup_error:
                logger.error(f"Could not remove orphaned upload {key}: {cleanup_error}")
            self.notices.append(Notice("Upload failed", "There was a problem saving the file. Please try again.", "destructive"))
            return None

        self.cache.invalidate(self.cache_key)
        self.reset()
        return record

    def delete(self, file_id: int) -> bool:
        if not self.confirm(DELETE_CONFIRMATION):
            return False

        try:
            self.api.delete(f"/api/files/{file_id}")
        except ApiError as e:
            logger.error(f"Failed to delete file {file_id}: {e}")
            self.notices.append(Notice("Delete failed", "The file could not be deleted. Please try again.", "destructive"))
            return False

        self.cache.invalidate(self.cache_key)
        return True
