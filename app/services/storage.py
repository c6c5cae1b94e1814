"""S3 service for course files and generated videos."""

import asyncio
import logging
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Object storage call failed."""


class StorageService:
    """Service for interacting with AWS S3 (or an S3-compatible endpoint)."""

    def __init__(self, settings: Settings):
        """Initialize S3 client with credentials from settings."""
        client_kwargs = {
            "aws_access_key_id": settings.aws_access_key_id or None,
            "aws_secret_access_key": settings.aws_secret_access_key or None,
            "region_name": settings.aws_s3_region,
        }
        # Support MinIO / LocalStack by pointing to a custom endpoint
        if settings.aws_s3_endpoint_url:
            client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)
        self.bucket = settings.aws_s3_bucket
        self.region = settings.aws_s3_region
        self.endpoint_url = settings.aws_s3_endpoint_url
        self.public_base_url = settings.storage_public_base_url

    def public_url(self, file_key: str) -> str:
        """URL clients use to fetch an uploaded object."""
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{file_key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{file_key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{file_key}"

    async def upload(self, file_key: str, file_data: bytes, content_type: str) -> str:
        """
        Upload bytes to S3 (server-side upload).

        Args:
            file_key: S3 object key (path) for the file
            file_data: Raw bytes of the file
            content_type: MIME type stored on the object

        Returns:
            Public URL of the stored object

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket,
                Key=file_key,
                Body=file_data,
                ContentType=content_type,
            )
        except ClientError as e:
            raise StorageError(f"Failed to upload file to S3: {str(e)}") from e
        logger.info("Uploaded %d bytes to s3://%s/%s", len(file_data), self.bucket, file_key)
        return self.public_url(file_key)

    async def delete(self, file_key: str) -> None:
        """
        Delete an object from S3.

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            await asyncio.to_thread(self.s3_client.delete_object, Bucket=self.bucket, Key=file_key)
        except ClientError as e:
            raise StorageError(f"Failed to delete file from S3: {str(e)}") from e
        logger.info("Deleted s3://%s/%s", self.bucket, file_key)


@lru_cache
def get_storage_service() -> StorageService:
    """FastAPI dependency returning the shared storage client."""
    return StorageService(get_settings())
