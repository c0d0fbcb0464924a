"""
Artwork Storage Service
Stores and fetches artwork images in an S3 bucket.
"""

import logging
import os
import uuid
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import get_settings
from ..errors import StorageError, StorageFileNotFoundError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}

_MISSING_KEY_CODES = {"404", "NoSuchKey", "NotFound"}


def build_object_key(filename: str) -> str:
    """Build a random object key that keeps the upload's extension."""
    extension = os.path.splitext(filename or "")[1].lower()
    return f"{uuid.uuid4().hex}{extension}"


class S3StorageService:
    """
    Thin wrapper around a boto3 S3 client.

    Credentials fall back to boto3's own lookup (env vars, instance
    profile) when they are not configured explicitly.
    """

    def __init__(
        self,
        bucket_name: str,
        region_name: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        self.bucket = bucket_name
        self.s3_client = boto3.client(
            "s3",
            region_name=region_name,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            endpoint_url=endpoint_url,
        )

    def upload_file(self, data: bytes, key: str, content_type: Optional[str] = None) -> str:
        """
        Upload bytes under `key`.

        Returns:
            The object key
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed for {key}: {e}", exc_info=True)
            raise StorageError("Failed to upload file", details={"key": key})

        logger.info(f"Uploaded s3://{self.bucket}/{key} ({len(data)} bytes)")
        return key

    def get_file(self, key: str) -> bytes:
        """
        Download an object.

        Raises:
            StorageFileNotFoundError: If the key does not exist
            StorageError: For any other S3 failure
        """
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                raise StorageFileNotFoundError(key)
            logger.error(f"S3 download failed for {key}: {e}", exc_info=True)
            raise StorageError("Failed to fetch file", details={"key": key})
        except BotoCoreError as e:
            logger.error(f"S3 download failed for {key}: {e}", exc_info=True)
            raise StorageError("Failed to fetch file", details={"key": key})

    def delete_file(self, key: str) -> None:
        """Delete an object. Deleting a missing key is not an error in S3."""
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 delete failed for {key}: {e}", exc_info=True)
            raise StorageError("Failed to delete file", details={"key": key})

        logger.info(f"Deleted s3://{self.bucket}/{key}")


_storage_service: Optional[S3StorageService] = None


def get_storage_service() -> S3StorageService:
    """Get storage service (singleton)."""
    global _storage_service
    if _storage_service is None:
        settings = get_settings()
        _storage_service = S3StorageService(
            bucket_name=settings.aws_bucket_name,
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
        )
    return _storage_service
