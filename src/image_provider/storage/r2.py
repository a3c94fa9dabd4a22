"""R2/S3-compatible storage client.

Signs time-limited GET URLs for objects stored in Cloudflare R2 (or any
S3-compatible endpoint).  Credentials are read from environment variables
so they never appear in config files.
"""

import asyncio
import logging
import os
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

import boto3
from botocore.exceptions import ClientError

from .path import BucketFilePath

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

ACCESS_KEY_ENV = "IMAGE_PROVIDER_R2_ACCESS_KEY_ID"
SECRET_KEY_ENV = "IMAGE_PROVIDER_R2_SECRET_ACCESS_KEY"


@runtime_checkable
class StorageClient(Protocol):
    """Backend able to turn a bucket path into a fetchable URL."""

    async def signed_url(self, path: BucketFilePath) -> str:
        """Return a directly fetchable, possibly expiring URL for *path*."""
        ...


class R2Client:
    """R2/S3 storage client for signing image URLs.

    Credentials are passed in, or read from environment variables at
    construction time:
        IMAGE_PROVIDER_R2_ACCESS_KEY_ID
        IMAGE_PROVIDER_R2_SECRET_ACCESS_KEY

    Attributes:
        endpoint_url: R2 endpoint URL
        region: R2 region (typically "auto")
        expires_in: Lifetime of signed URLs in seconds
    """

    def __init__(
        self,
        endpoint_url: str,
        region: str = "auto",
        expires_in: int = 3600,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
    ):
        """Initialize the R2 client.

        Args:
            endpoint_url: R2 endpoint URL
            region: R2 region
            expires_in: Lifetime of signed URLs in seconds
            access_key: Access key ID (default: from environment)
            secret_key: Secret access key (default: from environment)

        Raises:
            ValueError: If a credential is neither given nor set in the environment
        """
        access_key = access_key or os.environ.get(ACCESS_KEY_ENV, "")
        secret_key = secret_key or os.environ.get(SECRET_KEY_ENV, "")

        if not access_key or not secret_key:
            raise ValueError(f"{ACCESS_KEY_ENV} and {SECRET_KEY_ENV} must be set")

        self.endpoint_url = endpoint_url
        self.region = region
        self.expires_in = expires_in
        self.s3 = boto3.client(
            "s3",
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "R2Client":
        """Build a client from application settings.

        Credentials present in settings (e.g. loaded from ``.env``) are
        passed straight to the client; empty ones fall back to the
        environment.

        Args:
            settings: Loaded Settings

        Returns:
            Configured R2Client
        """
        return cls(
            settings.R2_ENDPOINT_URL,
            region=settings.R2_REGION,
            expires_in=settings.SIGNED_URL_EXPIRES_IN,
            access_key=settings.R2_ACCESS_KEY_ID or None,
            secret_key=settings.R2_SECRET_ACCESS_KEY or None,
        )

    async def signed_url(self, path: BucketFilePath) -> str:
        """Generate a presigned GET URL for an object.

        Every call signs again; nothing is cached.

        Args:
            path: Bucket path of the object

        Returns:
            Presigned URL valid for ``expires_in`` seconds

        Raises:
            botocore.exceptions.ClientError: If signing fails
        """
        loop = asyncio.get_event_loop()
        logger.debug(f"Signing URL for {path.key} (expires_in={self.expires_in}s)")

        return await loop.run_in_executor(
            None,
            lambda: self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": path.bucket, "Key": path.path},
                ExpiresIn=self.expires_in,
            ),
        )

    async def object_exists(self, path: BucketFilePath) -> bool:
        """Check if an object exists in R2.

        Used by the CLI to report missing objects before handing out a URL.

        Args:
            path: Bucket path of the object

        Returns:
            True if object exists, False otherwise
        """
        loop = asyncio.get_event_loop()

        try:
            await loop.run_in_executor(
                None, lambda: self.s3.head_object(Bucket=path.bucket, Key=path.path)
            )
            return True
        except ClientError:
            return False
