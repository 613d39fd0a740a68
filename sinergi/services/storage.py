import io
import logging
import os
import secrets
import time
from typing import List, Optional, Tuple

import boto3
from PIL import Image
from botocore.exceptions import BotoCoreError, ClientError

from sinergi.config import settings

logger = logging.getLogger(__name__)

WEBP_CONTENT_TYPE = "image/webp"


class EvidenceUploadError(Exception):
    pass


def get_s3_client():
    return boto3.client(
        's3',
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region
    )


def public_url(key: str, bucket: Optional[str] = None) -> str:
    """Deterministic public URL for an object in the evidence bucket"""
    bucket = bucket or settings.evidence_bucket
    if settings.storage_public_base_url:
        return f"{settings.storage_public_base_url.rstrip('/')}/{bucket}/{key}"
    return f"https://{bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"


def is_public_url(url: str, bucket: Optional[str] = None) -> bool:
    """True for URLs under the evidence bucket's public base"""
    return bool(url) and url.startswith(public_url("", bucket))


def convert_to_webp(file_bytes: bytes, content_type: Optional[str] = None, quality: Optional[int] = None) -> bytes:
    """Re-encode an image as WebP. WebP input is returned unchanged."""
    if content_type == WEBP_CONTENT_TYPE:
        return file_bytes

    quality = quality or settings.evidence_webp_quality
    with Image.open(io.BytesIO(file_bytes)) as img:
        # WebP has no CMYK/palette-with-alpha support
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.getbands() or img.mode == "P" else "RGB")
        output = io.BytesIO()
        img.save(output, "WEBP", quality=quality)
        return output.getvalue()


def evidence_key(property_id: int, filename: str) -> str:
    """Property-scoped object key, e.g. 3/1717171717171-k2j4h1.webp"""
    stem = os.path.splitext(os.path.basename(filename or "evidence"))[0] or "evidence"
    unique = f"{int(time.time() * 1000)}-{secrets.token_hex(3)}"
    return f"{property_id}/{unique}-{stem}.webp"


def upload_evidence(property_id: int, filename: str, file_bytes: bytes, content_type: Optional[str] = None, s3_client=None) -> str:
    """Convert and upload one evidence photo, returning its public URL"""
    try:
        webp_bytes = convert_to_webp(file_bytes, content_type)
    except (OSError, ValueError) as e:
        raise EvidenceUploadError(f"Could not convert {filename} to WebP: {str(e)}")

    key = evidence_key(property_id, filename)
    try:
        client = s3_client or get_s3_client()
        client.put_object(
            Bucket=settings.evidence_bucket,
            Key=key,
            Body=webp_bytes,
            ContentType=WEBP_CONTENT_TYPE
        )
    except (ClientError, BotoCoreError) as e:
        raise EvidenceUploadError(f"Error uploading {filename}: {str(e)}")

    return public_url(key)


def upload_evidence_batch(property_id: int, files: List[Tuple[str, bytes, Optional[str]]], s3_client=None) -> dict:
    """Upload files one after another.

    A failed file is reported in ``errors`` and skipped; files already
    uploaded stay in ``urls``.
    """
    client = s3_client or get_s3_client()
    urls = []
    errors = []

    for filename, file_bytes, content_type in files:
        try:
            urls.append(upload_evidence(property_id, filename, file_bytes, content_type, s3_client=client))
        except EvidenceUploadError as e:
            logger.warning(f"Evidence upload failed for property {property_id}: {e}")
            errors.append({"filename": filename, "error": str(e)})

    return {"urls": urls, "errors": errors}

