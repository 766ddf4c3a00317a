"""
Blob storage service for template backgrounds and rendered artifacts.
Files live under the configured storage directory and are served statically.
"""

import base64
import binascii
import mimetypes
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.config import Settings, get_settings
from ..core.exceptions import NotFoundError, PersistenceError, ValidationError
from ..utils.logger import get_logger

logger = get_logger("blob_storage_service")


def decode_data_url(value: str, field: str = "background_image") -> bytes:
    """
    Decode a ``data:<mime>;base64,<payload>`` URL or a bare base64 string.

    Raises:
        ValidationError: If the payload is empty or not valid base64
    """
    payload = value.strip()
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        if ";base64" not in header:
            raise ValidationError("Only base64 data URLs are supported", field=field)
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image payload is not valid base64", field=field)
    if not content:
        raise ValidationError("Image payload is empty", field=field)
    return content


class BlobStorageService:
    """Service for managing file storage operations."""

    def __init__(self, db: AsyncIOMotorDatabase, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.storage_dir = Path(self.settings.storage_dir)
        self.max_file_size = self.settings.max_upload_size

    def generate_storage_key(self, folder: str, owner_id: str, extension: str) -> str:
        """
        Generate a unique storage key for a file.

        Args:
            folder: Top-level folder ('templates' or 'credentials')
            owner_id: Owning organization id
            extension: File extension including the dot (e.g. '.png')
        """
        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        unique_id = uuid.uuid4().hex[:12]
        return f"{folder}/{owner_id}/{timestamp}_{unique_id}{extension}"

    def _path_for(self, ref: str) -> Path:
        root = self.storage_dir.resolve()
        path = (root / ref).resolve()
        if root not in path.parents:
            raise NotFoundError("Stored file", ref)
        return path

    def public_url(self, ref: str) -> str:
        return f"{self.settings.storage_base_url.rstrip('/')}/{ref}"

    async def store(
        self,
        content: bytes,
        folder: str,
        owner_id: str,
        extension: str = ".png",
        content_type: Optional[str] = None,
    ) -> str:
        """
        Write bytes to storage and record their metadata.

        Returns:
            str: Storage reference of the new file

        Raises:
            ValidationError: If the file is larger than the upload limit
            PersistenceError: If the write fails
        """
        if len(content) > self.max_file_size:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {self.max_file_size} bytes",
                field="file",
            )

        ref = self.generate_storage_key(folder, owner_id, extension)
        if not content_type:
            content_type = mimetypes.guess_type(ref)[0] or "application/octet-stream"

        path = self._path_for(ref)
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)

            await self.db.file_metadata.insert_one({
                "key": ref,
                "owner_id": owner_id,
                "content_type": content_type,
                "file_size": len(content),
                "storage_url": self.public_url(ref),
                "uploaded_at": datetime.utcnow(),
                "status": "uploaded",
            })
        except Exception as e:
            logger.error(f"File upload error for {ref}: {e}")
            await self._remove_quietly(path)
            raise PersistenceError("File upload failed") from e

        logger.info(f"File stored successfully: {ref} ({len(content)} bytes)")
        return ref

    async def load(self, ref: str) -> bytes:
        """
        Read a stored file.

        Raises:
            NotFoundError: If nothing is stored under the reference
        """
        path = self._path_for(ref)
        if not await aiofiles.os.path.isfile(path):
            raise NotFoundError("Stored file", ref)
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, ref: str) -> bool:
        """
        Remove a stored file. Returns False when it was already gone.
        """
        path = self._path_for(ref)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.warning(f"File already deleted: {ref}")
            return False

        await self.db.file_metadata.update_one(
            {"key": ref},
            {"$set": {"status": "deleted", "deleted_at": datetime.utcnow()}},
        )
        logger.info(f"File deleted successfully: {ref}")
        return True

    async def discard(self, ref: str) -> None:
        """
        Best-effort delete for unwinding a failed write. Logs failures and
        never raises.
        """
        try:
            await self.delete(ref)
        except Exception as e:
            logger.error(f"Could not discard orphaned file {ref}: {e}")

    async def _remove_quietly(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not remove partial file {path}: {e}")

    @staticmethod
    def extension_for(image_format: str) -> str:
        """File extension for a Pillow format name."""
        extension = mimetypes.guess_extension(f"image/{image_format.lower()}") or ".bin"
        return ".jpg" if extension in (".jpe", ".jpeg") else extension
