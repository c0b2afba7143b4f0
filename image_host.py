import logging
import uuid
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import ALLOWED_IMAGE_TYPES, AWS_REGION, MAX_IMAGE_BYTES, S3_BUCKET, UPLOAD_DIR
from errors import UpstreamError, ValidationFailed

logger = logging.getLogger(__name__)

EXTENSIONS = {"image/jpeg": ".jpg", "image/jpg": ".jpg", "image/png": ".png"}


def get_s3_client():
    return boto3.client("s3", region_name=AWS_REGION)


def validate_image(data: bytes, content_type: str | None):
    """
    Rejects empty uploads, anything that is not JPEG/PNG, and files over 2MB.
    """
    if not data:
        raise ValidationFailed("No file uploaded", error="No file uploaded")
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationFailed(
            "Invalid file type. Only JPG, JPEG, and PNG are allowed", error="Invalid file type"
        )
    if len(data) > MAX_IMAGE_BYTES:
        raise ValidationFailed("File size must be less than 2MB", error="File too large")


def upload_image(data: bytes, content_type: str, folder: str = "images") -> str:
    """
    Stores an image in S3 (or on local disk when no bucket is configured)
    and returns a URL for it.
    """
    validate_image(data, content_type)
    file_name = f"{uuid.uuid4().hex}{EXTENSIONS[content_type]}"
    key = f"{folder}/{file_name}"

    if S3_BUCKET:
        s3 = get_s3_client()
        try:
            s3.put_object(Bucket=S3_BUCKET, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload failed for %s: %s", key, e)
            raise UpstreamError(f"Image upload failed: {e}", error="Image upload failed") from e
        return f"https://{S3_BUCKET}.s3.{AWS_REGION}.amazonaws.com/{key}"

    # Local fallback
    local_path = Path(UPLOAD_DIR) / folder / file_name
    local_path.parent.mkdir(parents=True, exist_ok=True)
    with open(local_path, "wb") as f:
        f.write(data)
    return f"/uploads/{key}"
