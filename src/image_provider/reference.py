"""Image references: a direct URL or a path inside a storage bucket.

A reference is parsed once, never mutated, and gives a stable cache key
without any I/O.  Turning a stored reference into a fetchable URL needs a
signing round trip to the storage backend, done fresh on every call.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union, assert_never
from urllib.parse import urlsplit

from .models import RemoteFile
from .storage.path import BucketFilePath
from .storage.r2 import StorageClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectReference:
    """An absolute URL that can be fetched as-is."""

    url: str


@dataclass(frozen=True)
class StoredReference:
    """An object in a storage bucket; must be signed before fetching."""

    path: BucketFilePath


Reference = Union[DirectReference, StoredReference]


def _is_absolute_url(raw: str) -> bool:
    """Whether *raw* is a whitespace-free URL with a scheme and a body."""
    if any(c.isspace() for c in raw):
        return False
    try:
        parts = urlsplit(raw)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc or parts.path)


def parse_reference(raw: str) -> Optional[Reference]:
    """Parse a raw string into a reference.

    URLs with a scheme win over bucket paths, so an ambiguous string is
    always treated as a URL.  Text that merely starts with ``word:``, such
    as ``"note: see above"``, is not a URL.

    Args:
        raw: URL or ``<bucket>/<path>`` string

    Returns:
        DirectReference, StoredReference, or None if *raw* is neither
    """
    if _is_absolute_url(raw):
        return DirectReference(url=raw)

    path = BucketFilePath.from_key(raw)
    if path is not None:
        return StoredReference(path=path)

    logger.debug(f"Not a recognizable image reference: {raw!r}")
    return None


def reference_from_remote_file(remote: RemoteFile) -> Reference:
    """Convert an already validated RemoteFile into a reference.

    Args:
        remote: RemoteFile carrying either a URL or a bucket path

    Returns:
        Matching reference
    """
    path = remote.bucket_path
    if path is not None:
        return StoredReference(path=path)
    return DirectReference(url=remote.url)


def cache_identity(ref: Reference) -> str:
    """Stable cache key for a reference.

    Direct URLs are keyed by their path component, so query strings (and
    any signing parameters in them) never reach the key.  Stored objects
    are keyed by their bucket key, never by a signed URL.

    Args:
        ref: Reference to key

    Returns:
        Cache key string
    """
    if isinstance(ref, DirectReference):
        return urlsplit(ref.url).path
    elif isinstance(ref, StoredReference):
        return ref.path.key
    else:
        assert_never(ref)


async def resolve_url(ref: Reference, storage: StorageClient) -> str:
    """Resolve a reference into a directly fetchable URL.

    Args:
        ref: Reference to resolve
        storage: Backend used to sign stored references

    Returns:
        The URL itself for direct references, a freshly signed URL otherwise

    Raises:
        Exception: Whatever the storage backend raises, unchanged
    """
    if isinstance(ref, DirectReference):
        return ref.url
    elif isinstance(ref, StoredReference):
        url = await storage.signed_url(ref.path)
        logger.debug(f"Signed {ref.path.key}")
        return url
    else:
        assert_never(ref)
