"""Bounded-concurrency download scheduler."""

import asyncio
import tempfile
import time
from dataclasses import dataclass, field
from typing import Awaitable, BinaryIO, Callable, List, Optional, Sequence

import httpx

from ..core.constants import DownloadDefaults
from ..core.event_bus import EventBus
from ..core.events import FileDownloadedEvent, FileFailedEvent
from ..core.exceptions import PerFileDownloadError
from ..core.pause_controller import PauseController
from ..io.logger import get_logger
from ..manifest.schema import FileEntry
from .retry_utils import is_retryable_download_error, retry_with_exponential_backoff

logger = get_logger("scheduler")


@dataclass
class DownloadResult:
    """A fetched file, spooled and rewound. The receiver must close ``body``."""

    entry: FileEntry
    url: str
    body: BinaryIO
    size: int
    duration_ms: int


@dataclass
class SchedulerSummary:
    succeeded: List[str] = field(default_factory=list)
    failed: List[PerFileDownloadError] = field(default_factory=list)
    cancelled: bool = False


ResultHandler = Callable[[DownloadResult], Awaitable[None]]
SettledHandler = Callable[[FileEntry, Optional[PerFileDownloadError], int], Awaitable[None]]


def apply_cors_proxy(url: str, proxy_prefix: str) -> str:
    """Route a URL through a CORS proxy by prefixing it."""
    return f"{proxy_prefix}{url}"


class DownloadScheduler:
    """Fetches selected files with at most five requests in flight.

    Before each fetch starts, the scheduler waits on the PauseController;
    pausing holds back new fetches while those already running finish.
    Failures of single files are logged, reported and skipped.
    """

    max_concurrent = DownloadDefaults.MAX_CONCURRENT

    def __init__(
        self,
        client: httpx.AsyncClient,
        controller: PauseController,
        on_result: ResultHandler,
        on_settled: Optional[SettledHandler] = None,
        *,
        bus: Optional[EventBus] = None,
        job_id: str = "",
        use_cors_proxy: bool = False,
        cors_proxy: str = DownloadDefaults.CORS_PROXY,
        max_retries: int = DownloadDefaults.MAX_RETRIES,
        backoff_base_delay: float = DownloadDefaults.BACKOFF_BASE_DELAY,
        backoff_max_delay: float = DownloadDefaults.BACKOFF_MAX_DELAY,
        mirror_fallback: bool = False,
        chunk_size: int = DownloadDefaults.CHUNK_SIZE,
        spool_memory_bytes: int = DownloadDefaults.SPOOL_MEMORY_BYTES,
    ):
        self.client = client
        self.controller = controller
        self.on_result = on_result
        self.on_settled = on_settled
        self.bus = bus
        self.job_id = job_id
        self.use_cors_proxy = use_cors_proxy
        self.cors_proxy = cors_proxy
        self.max_retries = max_retries
        self.backoff_base_delay = backoff_base_delay
        self.backoff_max_delay = backoff_max_delay
        self.mirror_fallback = mirror_fallback
        self.chunk_size = chunk_size
        self.spool_memory_bytes = spool_memory_bytes

        self.completed = 0
        self.in_flight = 0
        self.peak_in_flight = 0
        self.summary = SchedulerSummary()

    def build_url(self, url: str) -> str:
        if self.use_cors_proxy:
            return apply_cors_proxy(url, self.cors_proxy)
        return url

    async def run(self, entries: Sequence[FileEntry]) -> SchedulerSummary:
        """Download every entry; resolves once each was handed off or skipped.

        Cancelling the awaiting task cancels every outstanding fetch.
        """
        semaphore = asyncio.Semaphore(self.max_concurrent)
        tasks = [
            asyncio.create_task(self._run_one(entry, semaphore)) for entry in entries
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        self.summary.cancelled = self.controller.is_cancelled
        return self.summary

    async def _run_one(self, entry: FileEntry, semaphore: asyncio.Semaphore) -> None:
        async with semaphore:
            if not await self.controller.wait_until_runnable():
                return

            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            error: Optional[PerFileDownloadError] = None
            try:
                result = await self.fetch(entry)
            except PerFileDownloadError as e:
                error = e
            finally:
                self.in_flight -= 1

        if error is None:
            self.summary.succeeded.append(entry.path)
            await self.on_result(result)
            await self._emit(
                FileDownloadedEvent(
                    job_id=self.job_id,
                    path=entry.path,
                    url=result.url,
                    size=result.size,
                    duration_ms=result.duration_ms,
                )
            )
        else:
            logger.warning(f"Skipping {entry.path}: {error.reason}")
            self.summary.failed.append(error)
            await self._emit(
                FileFailedEvent(
                    job_id=self.job_id,
                    path=entry.path,
                    url=error.url,
                    reason=error.reason,
                    status_code=error.status_code,
                )
            )

        self.completed += 1
        if self.on_settled:
            await self.on_settled(entry, error, self.completed)

    async def fetch(self, entry: FileEntry) -> DownloadResult:
        """Fetch one entry, retrying transient failures.

        With mirror fallback enabled the remaining candidate URLs are
        tried in order once the primary one is exhausted.
        """
        if not entry.downloads:
            raise PerFileDownloadError(entry.path, "", "no download URL")
        urls = entry.downloads if self.mirror_fallback else entry.downloads[:1]
        last_error: Optional[PerFileDownloadError] = None

        for url in urls:
            try:
                return await retry_with_exponential_backoff(
                    self._fetch_url,
                    entry,
                    url,
                    max_retries=self.max_retries,
                    base_delay=self.backoff_base_delay,
                    max_delay=self.backoff_max_delay,
                    should_retry=is_retryable_download_error,
                    on_retry=lambda attempt, delay, e: logger.info(
                        f"Retrying {entry.file_name} in {delay:.1f}s "
                        f"(attempt {attempt} failed: {e.reason})"
                    ),
                )
            except PerFileDownloadError as e:
                last_error = e
                if len(urls) > 1:
                    logger.debug(f"Mirror {url} failed for {entry.path}: {e.reason}")

        raise last_error

    async def _fetch_url(self, entry: FileEntry, url: str) -> DownloadResult:
        request_url = self.build_url(url)
        started = time.monotonic()
        body = tempfile.SpooledTemporaryFile(max_size=self.spool_memory_bytes)

        try:
            async with self.client.stream("GET", request_url) as response:
                if not response.is_success:
                    raise PerFileDownloadError(
                        entry.path,
                        url,
                        f"HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                async for chunk in response.aiter_bytes(self.chunk_size):
                    body.write(chunk)
        except httpx.HTTPError as e:
            body.close()
            reason = str(e) or type(e).__name__
            raise PerFileDownloadError(entry.path, url, reason) from e
        except BaseException:
            body.close()
            raise

        size = body.tell()
        body.seek(0)
        logger.debug(f"Fetched {entry.path} ({size} bytes)")
        return DownloadResult(
            entry=entry,
            url=url,
            body=body,
            size=size,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    async def _emit(self, event) -> None:
        if self.bus is not None:
            await self.bus.emit(event)
