"""S3-compatible object storage for customer documents and profile pictures"""

import logging
import uuid

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import (
    S3_ACCESS_KEY_ID,
    S3_BUCKET_NAME,
    S3_ENDPOINT_URL,
    S3_REGION,
    S3_SECRET_ACCESS_KEY,
)
from .security_utils import sanitize_filename

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour)
PRESIGNED_URL_EXPIRATION = 3600


class StorageError(Exception):
    """Raised when an object storage operation fails"""

    pass


def get_s3_client():
    """Create and return an S3 client."""
    return boto3.client(
        "s3",
        endpoint_url=S3_ENDPOINT_URL,
        aws_access_key_id=S3_ACCESS_KEY_ID,
        aws_secret_access_key=S3_SECRET_ACCESS_KEY,
        region_name=S3_REGION,
        config=Config(signature_version="s3v4"),
    )


def build_object_key(customer_id: int, document_type: str, filename: str) -> str:
    safe_name = sanitize_filename(filename)
    return f"customers/{customer_id}/{document_type}/{uuid.uuid4().hex}_{safe_name}"


def upload_bytes(key: str, content: bytes, content_type: str) -> str:
    """Upload an object and return its key"""
    if not S3_ACCESS_KEY_ID or not S3_SECRET_ACCESS_KEY:
        raise StorageError("Object storage is not configured")

    try:
        get_s3_client().put_object(
            Bucket=S3_BUCKET_NAME,
            Key=key,
            Body=content,
            ContentType=content_type,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to upload {key}: {e}")
        raise StorageError(str(e)) from e

    logger.info(f"✅ Uploaded object: {key}")
    return key


def generate_presigned_url(key: str, expiration: int = PRESIGNED_URL_EXPIRATION) -> str:
    """Generate a presigned URL for a private object."""
    try:
        return get_s3_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": S3_BUCKET_NAME, "Key": key, "ResponseContentDisposition": "inline"},
            ExpiresIn=expiration,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to generate presigned URL for key {key}: {e}")
        raise StorageError(str(e)) from e
