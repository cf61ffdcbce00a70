# contractor_hub/services/storage.py
# File storage backends for job documents and photos

import os
import io
import logging
from typing import List, Optional, Tuple
from uuid import uuid4
from datetime import datetime, timedelta
from azure.storage.blob import BlobServiceClient, BlobSasPermissions, ContentSettings, generate_blob_sas
from azure.core.exceptions import ResourceNotFoundError, AzureError
from werkzeug.utils import secure_filename
from PIL import Image

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'heic': 'image/heic',
    'mp4': 'video/mp4',
    'mov': 'video/quicktime',
    'pdf': 'application/pdf',
    'doc': 'application/msword',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'xls': 'application/vnd.ms-excel',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'csv': 'text/csv',
    'txt': 'text/plain'
}


class StorageError(Exception):
    """Raised when a backend cannot store or remove an object"""


def get_content_type(filename: str) -> str:
    """Get content type based on file extension"""
    if not filename or '.' not in filename:
        return 'application/octet-stream'
    ext = filename.rsplit('.', 1)[1].lower()
    return CONTENT_TYPES.get(ext, 'application/octet-stream')


def make_object_key(folder: str, filename: str) -> str:
    """Generate a unique object key with folder structure"""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    unique_id = str(uuid4())[:8]
    secure_name = secure_filename(filename) or 'upload'

    name_parts = secure_name.rsplit('.', 1)
    if len(name_parts) == 2:
        name, ext = name_parts
        return f"{folder}/{name}_{timestamp}_{unique_id}.{ext}"
    return f"{folder}/{secure_name}_{timestamp}_{unique_id}"


def create_thumbnail(image_content: bytes, size: Tuple[int, int] = (300, 300)) -> Optional[bytes]:
    """JPEG thumbnail of an image, or None if Pillow cannot read it"""
    try:
        with Image.open(io.BytesIO(image_content)) as img:
            if img.mode in ('RGBA', 'P', 'LA'):
                img = img.convert('RGB')
            img.thumbnail(size, Image.Resampling.LANCZOS)

            output = io.BytesIO()
            img.save(output, format='JPEG', quality=85, optimize=True)
            return output.getvalue()
    except Exception as e:
        logger.error(f"Thumbnail creation failed: {e}")
        return None


class StorageBackend:
    """
    Interface the upload flows depend on.

    upload() returns an opaque key; get_url() turns a key into a URL a browser
    can fetch; delete() removes the object and succeeds when it is already gone.
    """

    def upload(self, content: bytes, filename: str, folder: str = "general") -> str:
        raise NotImplementedError

    def get_url(self, key: str) -> str:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def upload_image_with_thumbnail(self, content: bytes, filename: str, folder: str = "photos") -> Tuple[str, Optional[str]]:
        """
        Upload an image and a thumbnail of it

        Returns:
            Tuple of (image_key, thumbnail_key or None)
        """
        key = self.upload(content, filename, folder)

        thumbnail = create_thumbnail(content)
        if not thumbnail:
            return key, None

        base = filename.rsplit('.', 1)[0]
        try:
            thumb_key = self.upload(thumbnail, f"thumb_{base}.jpg", f"{folder}/thumbnails")
        except StorageError as e:
            logger.warning(f"Thumbnail upload failed: {e}")
            return key, None
        return key, thumb_key


class LocalStorageBackend(StorageBackend):
    """Stores objects under a directory on local disk"""

    def __init__(self, root: str, url_prefix: str = "/api/uploads"):
        self.root = root
        self.url_prefix = url_prefix.rstrip('/')

    def _path(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if not path.startswith(os.path.abspath(self.root) + os.sep):
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def upload(self, content: bytes, filename: str, folder: str = "general") -> str:
        key = make_object_key(folder, filename)
        local_path = self._path(key)
        try:
            os.makedirs(os.path.dirname(local_path), exist_ok=True)
            with open(local_path, 'wb') as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Local upload failed: {e}")
            raise StorageError(f"Local upload failed: {e}")

        logger.info(f"Successfully uploaded locally: {local_path}")
        return key

    def get_url(self, key: str) -> str:
        return f"{self.url_prefix}/{key}"

    def delete(self, key: str) -> bool:
        local_path = self._path(key)
        if not os.path.exists(local_path):
            logger.info(f"Local file not found (already deleted): {local_path}")
            return True
        try:
            os.remove(local_path)
        except OSError as e:
            logger.error(f"Local deletion failed: {e}")
            raise StorageError(f"Local deletion failed: {e}")
        logger.info(f"Deleted local file: {local_path}")
        return True


class AzureBlobStorageBackend(StorageBackend):
    """Azure Blob Storage backend"""

    def __init__(self, connection_string: str, container_name: str = 'uploads', sas_expiry_hours: Optional[int] = None):
        self.container_name = container_name
        self.sas_expiry_hours = sas_expiry_hours
        self.blob_service_client = BlobServiceClient.from_connection_string(connection_string)
        self.container_client = self.blob_service_client.get_container_client(container_name)
        self._ensure_container_exists()
        logger.info(f"Azure Blob Storage initialized - Container: {container_name}")

    def _ensure_container_exists(self):
        """Ensure the storage container exists"""
        try:
            self.container_client.get_container_properties()
        except ResourceNotFoundError:
            self.container_client.create_container()
            logger.info(f"Created container: {self.container_name}")

    def upload(self, content: bytes, filename: str, folder: str = "general") -> str:
        key = make_object_key(folder, filename)
        try:
            blob_client = self.container_client.get_blob_client(key)
            blob_client.upload_blob(
                content,
                overwrite=True,
                metadata={
                    'original_filename': secure_filename(filename) or 'upload',
                    'upload_timestamp': datetime.utcnow().isoformat(),
                    'folder': folder
                },
                content_settings=ContentSettings(content_type=get_content_type(filename))
            )
        except AzureError as e:
            logger.error(f"Azure upload failed: {e}")
            raise StorageError(f"Azure upload failed: {e}")

        logger.info(f"Successfully uploaded to Azure: {key}")
        return key

    def get_url(self, key: str) -> str:
        blob_client = self.container_client.get_blob_client(key)
        if not self.sas_expiry_hours:
            return blob_client.url

        # Signed URL for temporary access to private containers
        sas_token = generate_blob_sas(
            account_name=self.blob_service_client.account_name,
            container_name=self.container_name,
            blob_name=key,
            account_key=self.blob_service_client.credential.account_key,
            permission=BlobSasPermissions(read=True),
            expiry=datetime.utcnow() + timedelta(hours=self.sas_expiry_hours)
        )
        return f"{blob_client.url}?{sas_token}"

    def delete(self, key: str) -> bool:
        try:
            self.container_client.get_blob_client(key).delete_blob()
        except ResourceNotFoundError:
            logger.info(f"Blob not found (already deleted): {key}")
            return True
        except AzureError as e:
            logger.error(f"Azure deletion failed: {e}")
            raise StorageError(f"Azure deletion failed: {e}")
        logger.info(f"Deleted from Azure: {key}")
        return True


def create_storage_backend(config) -> StorageBackend:
    """
    Pick a backend from app config: Azure when a connection string is set,
    otherwise local disk under UPLOAD_FOLDER.
    """
    connection_string = config.get('AZURE_STORAGE_CONNECTION_STRING')
    if connection_string:
        try:
            return AzureBlobStorageBackend(
                connection_string,
                config.get('AZURE_STORAGE_CONTAINER_NAME', 'uploads'),
                config.get('AZURE_STORAGE_SAS_HOURS'),
            )
        except Exception as e:
            logger.error(f"Failed to initialize Azure Storage, using local storage: {e}")

    upload_folder = config.get('UPLOAD_FOLDER', 'uploads')
    logger.warning("Azure Storage connection string not configured - using local storage")
    return LocalStorageBackend(upload_folder, url_prefix="/api/uploads")


def get_storage_backend(app) -> StorageBackend:
    """The app's StorageBackend, created on first use"""
    backend = app.extensions.get('storage_backend')
    if backend is None:
        backend = create_storage_backend(app.config)
        app.extensions['storage_backend'] = backend
    return backend


def remove_stored_objects(storage: StorageBackend, keys) -> List[str]:
    """
    Delete every key, carrying on past failures.

    Returns the keys that could not be removed; each failure is logged.
    """
    failed = []
    for key in keys:
        try:
            storage.delete(key)
        except StorageError as e:
            logger.warning(f"Stored object {key} not removed: {e}")
            failed.append(key)
    return failed
