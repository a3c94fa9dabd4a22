"""ImageProvider: binds a storage backend to one image reference."""

from typing import Optional

from PIL import Image

from .config import get_settings
from .downloader import Downloader, DownloadOptions, DownloadResult, default_downloader
from .fetcher import DataHandler, Fetcher
from .models import RemoteFile
from .reference import (
    Reference,
    cache_identity,
    parse_reference,
    reference_from_remote_file,
    resolve_url,
)
from .storage.r2 import StorageClient


class ImageProvider:
    """Public entry point for fetching one referenced image.

    The cache key is available immediately and never depends on a signed
    URL.  Each fetch resolves the reference again, so stored images are
    always fetched through a freshly signed URL.

    Attributes:
        reference: The image reference
        storage: Backend used to sign stored references
    """

    def __init__(
        self,
        reference: Reference,
        storage: StorageClient,
        downloader: Optional[Downloader] = None,
        options: Optional[DownloadOptions] = None,
    ):
        """Initialize the provider.

        Args:
            reference: Image reference
            storage: Backend used to sign stored references
            downloader: Downloader to use (default: shared HttpImageDownloader)
            options: Options passed to every download (default: timeout from
                Settings.DOWNLOAD_TIMEOUT)
        """
        self.reference = reference
        self.storage = storage
        if options is None:
            options = DownloadOptions(timeout=get_settings().DOWNLOAD_TIMEOUT)
        self._fetcher = Fetcher(
            reference,
            storage,
            downloader if downloader is not None else default_downloader(),
            options,
        )

    @classmethod
    def from_string(
        cls,
        raw: str,
        storage: StorageClient,
        downloader: Optional[Downloader] = None,
        options: Optional[DownloadOptions] = None,
    ) -> Optional["ImageProvider"]:
        """Build a provider from a URL or bucket path string.

        Returns:
            ImageProvider, or None if *raw* is not a recognizable reference
        """
        reference = parse_reference(raw)
        if reference is None:
            return None
        return cls(reference, storage, downloader, options)

    @classmethod
    def from_remote_file(
        cls,
        remote: RemoteFile,
        storage: StorageClient,
        downloader: Optional[Downloader] = None,
        options: Optional[DownloadOptions] = None,
    ) -> "ImageProvider":
        """Build a provider from a RemoteFile."""
        return cls(reference_from_remote_file(remote), storage, downloader, options)

    @property
    def cache_key(self) -> str:
        """Stable cache key for the referenced image."""
        return cache_identity(self.reference)

    async def resolve_url(self) -> str:
        """Resolve the reference to a fetchable URL."""
        return await resolve_url(self.reference, self.storage)

    def fetch_data(self, handler: DataHandler) -> None:
        """Fetch raw image bytes in the background; see Fetcher.fetch_data."""
        self._fetcher.fetch_data(handler)

    async def fetch_image(self) -> Image.Image:
        """Fetch the decoded image."""
        return await self._fetcher.fetch_image()

    async def fetch_result(self) -> DownloadResult:
        """Fetch both raw bytes and decoded image."""
        return await self._fetcher.fetch_result()

    def __repr__(self) -> str:
        return f"ImageProvider(cache_key={self.cache_key!r})"
