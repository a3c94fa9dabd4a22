"""Resolve-then-download pipeline with callback and async entry points.

Both entry points share one pipeline: resolve the reference to a URL
(awaiting the storage backend for stored references), then hand the URL
to the completion-based downloader.  Each call runs its own pipeline;
concurrent calls for the same reference are not coalesced.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import Callable, Optional, Set

from PIL import Image

from .downloader import Downloader, DownloadOptions, DownloadResult
from .models import Failure, Result, Success
from .reference import Reference, cache_identity, resolve_url
from .storage.r2 import StorageClient

logger = logging.getLogger(__name__)

DataHandler = Callable[[Result[bytes]], None]

# Detached fetch_data tasks, held until done so they are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


class FetchState(str, Enum):
    """Lifecycle of a single fetch call."""

    IDLE = "idle"
    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"


class Fetcher:
    """Fetches the image behind one reference.

    Attributes:
        reference: Reference to fetch
        storage: Backend used to sign stored references
        downloader: Completion-based downloader
        options: Options passed to every download
    """

    def __init__(
        self,
        reference: Reference,
        storage: StorageClient,
        downloader: Downloader,
        options: Optional[DownloadOptions] = None,
    ):
        self.reference = reference
        self.storage = storage
        self.downloader = downloader
        self.options = options or DownloadOptions()

    async def fetch_result(self) -> DownloadResult:
        """Resolve the reference and download the image.

        Returns:
            DownloadResult with raw bytes and decoded image

        Raises:
            Exception: The first error from signing or downloading, unchanged
        """
        key = cache_identity(self.reference)
        state = FetchState.IDLE

        try:
            state = self._transition(key, state, FetchState.RESOLVING)
            url = await resolve_url(self.reference, self.storage)

            state = self._transition(key, state, FetchState.DOWNLOADING)
            result = await self._download(url)
        except Exception as e:
            self._transition(key, state, FetchState.FAILED)
            logger.info(f"Fetch failed for {key} while {state.value}: {e}")
            raise

        self._transition(key, state, FetchState.COMPLETED)
        return result

    async def fetch_image(self) -> Image.Image:
        """Fetch and return the decoded image."""
        result = await self.fetch_result()
        return result.image

    def fetch_data(self, handler: DataHandler) -> None:
        """Fetch raw image bytes in the background.

        Returns immediately.  The work runs as a detached task on the
        running event loop, or on a daemon thread with its own loop when
        called from synchronous code.  It cannot be cancelled; its only
        observable effect is the single call to *handler*.

        Args:
            handler: Called exactly once with Success(bytes) or Failure(error)
        """
        coro = self._deliver_data(handler)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            thread = threading.Thread(
                target=asyncio.run,
                args=(coro,),
                name=f"fetch-data:{cache_identity(self.reference)}",
                daemon=True,
            )
            thread.start()
            return

        task = loop.create_task(coro)
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    async def _deliver_data(self, handler: DataHandler) -> None:
        try:
            result = await self.fetch_result()
        except Exception as e:
            outcome: Result[bytes] = Failure(e)
        else:
            outcome = Success(result.original_data)

        try:
            handler(outcome)
        except Exception:
            logger.exception(f"fetch_data handler raised for {cache_identity(self.reference)}")

    async def _download(self, url: str) -> DownloadResult:
        """Await the downloader's completion callback.

        The callback may arrive on any thread.  Only its first invocation
        settles the future; later invocations are dropped.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        lock = threading.Lock()
        fired = False

        def settle(result: Result[DownloadResult]) -> None:
            if future.done():
                return
            if isinstance(result, Success):
                future.set_result(result.value)
            else:
                future.set_exception(result.error)

        def completion(result: Result[DownloadResult]) -> None:
            nonlocal fired
            with lock:
                if fired:
                    logger.warning(f"Ignoring repeated download completion for {url}")
                    return
                fired = True
            loop.call_soon_threadsafe(settle, result)

        self.downloader.download_image(url, self.options, completion)
        return await future

    @staticmethod
    def _transition(key: str, current: FetchState, new: FetchState) -> FetchState:
        logger.debug(f"{key}: {current.value} -> {new.value}")
        return new
