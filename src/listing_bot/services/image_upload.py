"""
Listing photo upload — validation, compression, and storage.

Processing flow:
  file → validate (type, extension, size, filename)
       → compress locally with Pillow (fit within 1920px, JPEG q80)
       → POST to the compression endpoint (if configured)
       → on any failure there, PUT directly into the storage bucket

The storage API follows the Supabase Storage REST layout:
  upload:  POST {storage_url}/storage/v1/object/{bucket}/{path}
  public:  {storage_url}/storage/v1/object/public/{bucket}/{path}

The wizard only ever sees the resulting URL (or an ImageUploadError).
"""

import asyncio
import io
import logging
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import PurePosixPath

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB
MIN_FILE_SIZE = 1024  # 1 KB, rejects empty/corrupted files
SUSPICIOUS_NAME = re.compile(r"\.(php|exe|bat|cmd|scr|js|html?)$", re.IGNORECASE)

MAX_DIMENSION = 1920
JPEG_QUALITY = 80


class ImageUploadError(Exception):
    """A photo was rejected or could not be stored."""


@dataclass
class ImageFile:
    filename: str
    content: bytes
    mime_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return PurePosixPath(self.filename.lower()).suffix


def validate_image_file(file: ImageFile) -> None:
    """Raise ImageUploadError if the file must not be uploaded."""
    if file.mime_type.lower() not in ALLOWED_MIME_TYPES:
        raise ImageUploadError("Only JPG, PNG, and WebP images are allowed")
    if ".." in file.filename or "/" in file.filename or "\\" in file.filename:
        raise ImageUploadError("Invalid filename")
    if file.extension not in ALLOWED_EXTENSIONS:
        raise ImageUploadError("Invalid file extension")
    if SUSPICIOUS_NAME.search(file.filename):
        raise ImageUploadError("File type not allowed for security reasons")
    if file.size > MAX_FILE_SIZE:
        raise ImageUploadError("Image size must be less than 5MB")
    if file.size < MIN_FILE_SIZE:
        raise ImageUploadError("File is too small or corrupted")


def compress_image(
    content: bytes,
    *,
    max_dimension: int = MAX_DIMENSION,
    quality: int = JPEG_QUALITY,
) -> bytes:
    """Re-encode an image as an optimized JPEG no larger than max_dimension."""
    out = io.BytesIO()
    try:
        img = Image.open(io.BytesIO(content))
        img = ImageOps.exif_transpose(img)
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
        img.save(out, format="JPEG", quality=quality, optimize=True)
    except Image.DecompressionBombError as e:
        raise ImageUploadError("Image dimensions are too large") from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        # Truncated or malformed data can surface at any decoding stage
        raise ImageUploadError("File is not a readable image") from e
    compressed = out.getvalue()
    logger.debug(
        "Compressed image: %d → %d bytes (%.1f%%)",
        len(content), len(compressed), (1 - len(compressed) / len(content)) * 100,
    )
    return compressed


class ImageUploader:
    """
    Async client that stores listing photos and returns their public URLs.

    Pass `client` to reuse an httpx.AsyncClient (tests use a MockTransport).
    """

    def __init__(
        self,
        *,
        storage_url: str,
        api_key: str,
        bucket: str = "property-images",
        compress_url: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.storage_url = storage_url.rstrip("/")
        self.bucket = bucket
        self.compress_url = compress_url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}

    @property
    def is_configured(self) -> bool:
        return bool(self.storage_url)

    def public_url(self, path: str) -> str:
        return f"{self.storage_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def upload(self, file: ImageFile, owner_id: str) -> str:
        """Validate, compress and store one photo. Returns its public URL."""
        validate_image_file(file)
        content = await asyncio.to_thread(compress_image, file.content)

        if self.compress_url:
            try:
                return await self._upload_via_compressor(content, owner_id)
            except (httpx.HTTPError, ValueError, KeyError) as e:
                logger.warning("Compression endpoint failed, using direct upload: %s", e)

        return await self._upload_direct(content, owner_id)

    async def _upload_via_compressor(self, content: bytes, owner_id: str) -> str:
        response = await self._client.post(
            self.compress_url,
            headers=self._headers,
            data={"userId": owner_id},
            files={"image": ("image.jpg", content, "image/jpeg")},
        )
        response.raise_for_status()
        result = response.json()
        if not result.get("success"):
            raise ValueError(result.get("error") or "Server compression failed")
        return result["url"]

    async def _upload_direct(self, content: bytes, owner_id: str) -> str:
        if not self.is_configured:
            raise ImageUploadError("Photo storage is not configured")

        path = f"{owner_id}/{int(time.time() * 1000)}-{secrets.token_hex(6)}.jpg"
        try:
            response = await self._client.post(
                f"{self.storage_url}/storage/v1/object/{self.bucket}/{path}",
                headers={
                    **self._headers,
                    "Content-Type": "image/jpeg",
                    "Cache-Control": "3600",
                    "x-upsert": "false",
                },
                content=content,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Direct upload failed for %s: %s", path, e)
            raise ImageUploadError(f"Direct upload failed: {e}") from e

        logger.info("Uploaded listing photo %s (%d bytes)", path, len(content))
        return self.public_url(path)

    async def close(self) -> None:
        await self._client.aclose()
