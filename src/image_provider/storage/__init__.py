"""Storage backends for image-provider."""

from .path import BucketFilePath
from .r2 import R2Client, StorageClient

__all__ = ["BucketFilePath", "R2Client", "StorageClient"]
