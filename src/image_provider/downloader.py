"""Completion-based image downloader.

Downloads run on a small thread pool using httpx and are decoded with
Pillow.  Each download reports back exactly once through a completion
callback, which is invoked on the worker thread.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Dict, Optional, Protocol

import httpx
from PIL import Image, UnidentifiedImageError

from .config import get_settings
from .errors import ImageDownloadError
from .models import Failure, Result, Success

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "image/png,image/jpeg,image/webp,image/gif,*/*;q=0.5",
}


@dataclass
class DownloadOptions:
    """Per-request download options.

    Attributes:
        timeout: Request timeout in seconds
        headers: Extra HTTP headers sent with the request
    """

    timeout: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class DownloadResult:
    """A downloaded and decoded image.

    Attributes:
        url: URL the image was fetched from
        original_data: Raw response bytes
        image: Decoded Pillow image
    """

    url: str
    original_data: bytes
    image: Image.Image


CompletionHandler = Callable[[Result[DownloadResult]], None]


class DownloadTask:
    """Handle for one in-flight download."""

    def __init__(self, url: str, future: Future):
        self.url = url
        self._future = future

    def cancel(self) -> bool:
        """Cancel the download if it has not started yet."""
        return self._future.cancel()

    def done(self) -> bool:
        return self._future.done()


class Downloader(Protocol):
    """Single-shot, completion-based image downloader."""

    def download_image(
        self,
        url: str,
        options: DownloadOptions,
        completion: CompletionHandler,
    ) -> DownloadTask:
        """Start downloading *url* and report the outcome to *completion*."""
        ...


class HttpImageDownloader:
    """Thread-pool backed downloader using httpx and Pillow."""

    def __init__(
        self,
        max_workers: int = 4,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the downloader.

        Args:
            max_workers: Number of concurrent download threads
            headers: Headers sent with every request
            transport: httpx transport override (e.g. httpx.MockTransport)
        """
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        # httpx.Client is thread-safe; one pool is shared by all workers
        self._client = httpx.Client(follow_redirects=True, transport=transport)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="image-download"
        )

    def download_image(
        self,
        url: str,
        options: DownloadOptions,
        completion: CompletionHandler,
    ) -> DownloadTask:
        """Start downloading an image.

        Args:
            url: Fetchable image URL
            options: Request options
            completion: Called once with Success(DownloadResult) or Failure

        Returns:
            DownloadTask for the scheduled download
        """
        future = self._executor.submit(self._run, url, options, completion)
        return DownloadTask(url, future)

    def _run(self, url: str, options: DownloadOptions, completion: CompletionHandler) -> None:
        try:
            result: Result[DownloadResult] = Success(self._download(url, options))
        except Exception as e:
            logger.warning(f"Image download failed: {e}")
            result = Failure(e)

        try:
            completion(result)
        except Exception:
            logger.exception(f"Download completion handler failed for {url}")

    def _download(self, url: str, options: DownloadOptions) -> DownloadResult:
        headers = {**self.headers, **options.headers}
        logger.debug(f"Downloading image: {url}")

        try:
            response = self._client.get(url, headers=headers, timeout=options.timeout)
            response.raise_for_status()
            data = response.content
        except httpx.HTTPStatusError as e:
            raise ImageDownloadError(
                url, f"HTTP {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.TimeoutException as e:
            raise ImageDownloadError(url, "request timed out") from e
        except httpx.HTTPError as e:
            raise ImageDownloadError(url, str(e)) from e

        try:
            image = Image.open(BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageDownloadError(url, f"cannot decode image: {e}") from e

        logger.debug(f"Downloaded {len(data)} bytes from {url} ({image.format} {image.size})")
        return DownloadResult(url=url, original_data=data, image=image)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker threads and close the HTTP connection pool."""
        self._executor.shutdown(wait=wait)
        self._client.close()


_default_downloader: Optional[HttpImageDownloader] = None
_default_lock = threading.Lock()


def default_downloader() -> HttpImageDownloader:
    """Return the process-wide shared downloader, creating it on first use."""
    global _default_downloader
    with _default_lock:
        if _default_downloader is None:
            _default_downloader = HttpImageDownloader(max_workers=get_settings().DOWNLOAD_WORKERS)
        return _default_downloader
