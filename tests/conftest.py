"""Shared fixtures and fakes for image-provider tests."""

import asyncio
import threading
from concurrent.futures import Future
from io import BytesIO
from typing import List, Optional

import pytest
from PIL import Image

from image_provider.downloader import DownloadOptions, DownloadResult, DownloadTask
from image_provider.models import Failure, Result, Success
from image_provider.storage.path import BucketFilePath


def make_png(size=(2, 3), color=(255, 0, 0)) -> bytes:
    """Encode a small solid-color PNG."""
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeStorage:
    """StorageClient that records calls and signs a new URL each time."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[BucketFilePath] = []

    async def signed_url(self, path: BucketFilePath) -> str:
        self.calls.append(path)
        n = len(self.calls)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return (
            f"https://acct.r2.cloudflarestorage.com/{path.bucket}/{path.path}"
            f"?X-Amz-Expires=3600&X-Amz-Signature=sig{n}"
        )


class FakeDownloader:
    """Downloader that completes from a list of canned outcomes.

    The first outcome is ``Success`` with *data* unless *error* is given.
    *duplicate* is delivered as a second completion, to exercise callers
    against misbehaving downloaders.
    """

    def __init__(
        self,
        data: Optional[bytes] = None,
        error: Optional[Exception] = None,
        duplicate: Optional[Result] = None,
        threaded: bool = False,
    ):
        self.data = data if data is not None else make_png()
        self.error = error
        self.duplicate = duplicate
        self.threaded = threaded
        self.urls: List[str] = []
        self.options: List[DownloadOptions] = []

    def download_image(self, url, options, completion) -> DownloadTask:
        self.urls.append(url)
        self.options.append(options)

        if self.error is not None:
            outcomes = [Failure(self.error)]
        else:
            image = Image.open(BytesIO(self.data))
            outcomes = [Success(DownloadResult(url=url, original_data=self.data, image=image))]
        if self.duplicate is not None:
            outcomes.append(self.duplicate)

        def run():
            for outcome in outcomes:
                completion(outcome)

        future: Future = Future()
        future.set_result(None)
        if self.threaded:
            threading.Thread(target=run).start()
        else:
            run()
        return DownloadTask(url, future)


@pytest.fixture
def png_bytes():
    """A 2x3 red PNG."""
    return make_png()


@pytest.fixture
def storage():
    """Recording fake storage backend."""
    return FakeStorage()


@pytest.fixture
def downloader(png_bytes):
    """Fake downloader returning the PNG fixture."""
    return FakeDownloader(data=png_bytes)
