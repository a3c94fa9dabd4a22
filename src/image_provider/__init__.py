"""image-provider: resolve and fetch images referenced by URL or bucket path.

A reference is either an absolute URL or a ``<bucket>/<path>`` inside an
S3-compatible bucket.  ImageProvider gives each reference a stable cache
key and fetches it through a freshly signed URL when needed, either with
a completion handler or as a coroutine.
"""

__version__ = "0.1.0"

from image_provider.downloader import (
    Downloader,
    DownloadOptions,
    DownloadResult,
    HttpImageDownloader,
)
from image_provider.errors import ImageDownloadError, ImageProviderError
from image_provider.models import Failure, RemoteFile, Result, Success
from image_provider.provider import ImageProvider
from image_provider.reference import (
    DirectReference,
    Reference,
    StoredReference,
    cache_identity,
    parse_reference,
    reference_from_remote_file,
    resolve_url,
)
from image_provider.storage import BucketFilePath, R2Client, StorageClient

__all__ = [
    "BucketFilePath",
    "DirectReference",
    "DownloadOptions",
    "DownloadResult",
    "Downloader",
    "Failure",
    "HttpImageDownloader",
    "ImageDownloadError",
    "ImageProvider",
    "ImageProviderError",
    "R2Client",
    "Reference",
    "RemoteFile",
    "Result",
    "StorageClient",
    "StoredReference",
    "Success",
    "cache_identity",
    "parse_reference",
    "reference_from_remote_file",
    "resolve_url",
]
