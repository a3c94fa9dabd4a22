"""Bucket file paths for S3-compatible object storage.

A bucket file path names one object as ``<bucket>/<object key>``, e.g.
``avatars/42.png`` or ``covers/2024/album.jpg``.  The syntax follows the
bucket naming rules of S3/R2 and a conservative subset of safe object key
characters.
"""

import re
from dataclasses import dataclass
from typing import Optional

# S3 bucket naming rules: 3-63 chars, lowercase, digits, dots and hyphens
_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9.\-]{1,61}[a-z0-9]$")

# Safe characters for a single object key segment
_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._\-+=@()]+$")

MAX_KEY_BYTES = 1024


@dataclass(frozen=True)
class BucketFilePath:
    """A validated path to an object inside a storage bucket.

    Attributes:
        bucket: Bucket name
        path: Object key within the bucket
    """

    bucket: str
    path: str

    @property
    def key(self) -> str:
        """Canonical ``<bucket>/<path>`` key for this object."""
        return f"{self.bucket}/{self.path}"

    @classmethod
    def from_key(cls, key: str) -> Optional["BucketFilePath"]:
        """Parse a ``<bucket>/<path>`` string.

        Args:
            key: Raw bucket path string

        Returns:
            BucketFilePath, or None if *key* is not a well-formed bucket path
        """
        if not key or len(key.encode("utf-8")) > MAX_KEY_BYTES:
            return None

        bucket, sep, path = key.partition("/")
        if not sep or not _BUCKET_RE.match(bucket):
            return None
        if ".." in bucket:
            return None

        segments = path.split("/")
        for segment in segments:
            if segment in ("", ".", ".."):
                return None
            if not _SEGMENT_RE.match(segment):
                return None

        return cls(bucket=bucket, path=path)

    def __str__(self) -> str:
        return self.key
