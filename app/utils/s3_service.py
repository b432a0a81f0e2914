import os
import io
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from PIL import Image
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.schemas.posting import ImageRef
from app.utils.app_error import UploadError

logger = logging.getLogger(__name__)

FOLDER = "lost-and-found"


def compress_image(data: bytes, max_width=1400, quality=80):
    img = Image.open(io.BytesIO(data))
    img = img.convert("RGB")

    # Resize while keeping aspect ratio
    w, h = img.size
    if w > max_width:
        new_height = int(h * (max_width / w))
        img = img.resize((max_width, new_height), Image.LANCZOS)

    buffer = io.BytesIO()

    try:
        img.save(buffer, format="WEBP", quality=quality, method=6)
        ext = "webp"
        mime = "image/webp"
    except (OSError, KeyError) as e:
        # Pillow built without WebP support
        logger.warning("WebP encode failed, falling back to JPEG: %s", e)

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality, optimize=True)
        ext = "jpg"
        mime = "image/jpeg"

    buffer.seek(0)
    return buffer, ext, mime


def build_key(original_name: str, ext: str) -> str:
    base = os.path.splitext(os.path.basename(original_name))[0] or "photo"

    ts = int(datetime.now(timezone.utc).timestamp())
    return f"{FOLDER}/{base}-{ts}-{uuid.uuid4().hex[:8]}.{ext}"


class S3ObjectStore:
    """Image storage on an S3 compatible bucket (Cloudflare R2).

    The deletion handle is the object key; the URL is the key appended to
    the bucket's public base URL.
    """

    def __init__(self, client, bucket: str, public_base_url: str):
        self.client = client
        self.bucket = bucket
        self.public_base_url = (public_base_url or "").rstrip("/")

    @classmethod
    def from_env(cls):
        account_id = os.getenv("CLOUDFLARE_ACCOUNT_ID")
        client = boto3.client(
            service_name="s3",
            endpoint_url=f"https://{account_id}.r2.cloudflarestorage.com",
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            region_name="auto",
        )
        return cls(client, os.getenv("R2_BUCKET"), os.getenv("R2_PUBLIC_URL", ""))

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    async def upload(self, image: ImageRef):
        return await asyncio.to_thread(self.upload_sync, image)

    def upload_sync(self, image: ImageRef):
        try:
            buffer, ext, mime = compress_image(image.content)
        except (OSError, Image.DecompressionBombError) as e:
            raise UploadError(f"Could not read image {image.filename}") from e

        key = build_key(image.filename, ext)

        try:
            self.client.upload_fileobj(buffer, self.bucket, key, ExtraArgs={"ContentType": mime})
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload of %s failed: %s", key, e)
            raise UploadError("Image upload failed") from e

        return self.public_url(key), key

    async def delete(self, deletion_handle: str):
        await asyncio.to_thread(self.delete_sync, deletion_handle)

    def delete_sync(self, deletion_handle: str):
        try:
            self.client.delete_object(Bucket=self.bucket, Key=deletion_handle)
        except (BotoCoreError, ClientError) as e:
            logger.warning("Error deleting S3 object %s: %s", deletion_handle, e)
