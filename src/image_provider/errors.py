"""Exceptions raised by image-provider."""

from typing import Optional


class ImageProviderError(Exception):
    """Base exception for image-provider errors."""

    pass


class ImageDownloadError(ImageProviderError):
    """Raised when an image cannot be downloaded or decoded.

    Attributes:
        url: URL that was being fetched
        status_code: HTTP status code, when the server answered with an error
    """

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        """Initialize the error.

        Args:
            url: URL that was being fetched
            message: Human readable reason
            status_code: HTTP status code, if any
        """
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to download {url}: {message}")
