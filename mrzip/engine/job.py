"""A single conversion job running in its own asyncio task."""

import asyncio
import tempfile
import time
import uuid
import zipfile
from typing import AsyncIterator, BinaryIO, Dict, FrozenSet, List, Optional, Set

import httpx

from ..archive.builder import ArchiveBuilder, EntryCategory
from ..archive.scripts import StartupScripts, render_scripts, resolve_script_options
from ..config.config import Config
from ..core.constants import DownloadDefaults, ScriptDefaults
from ..core.event_bus import EventBus
from ..core.events import (
    JobCompleteEvent,
    JobFailedEvent,
    JobPausedEvent,
    JobResumedEvent,
    JobStartEvent,
    OverridesCopiedEvent,
    ProgressEvent,
)
from ..core.exceptions import (
    InvalidPackError,
    MrzipError,
    PerFileDownloadError,
    TransportError,
)
from ..core.pause_controller import PauseController
from ..core.progress_estimator import ProgressEstimator
from ..core.types import (
    ConversionOptions,
    ConversionResult,
    InjectedFile,
    JobProgress,
    JobState,
)
from ..downloads.scheduler import DownloadResult, DownloadScheduler, SchedulerSummary
from ..io.logger import get_logger
from ..manifest.reader import OverrideEntry, PackSource, list_overrides, open_pack
from ..manifest.schema import FileEntry, Manifest
from ..manifest.selection import is_full_selection, selected_entries
from .messages import Done, ErrorMessage, Progress, Response, TERMINAL_RESPONSES
from .naming import output_file_name

logger = get_logger("job")

# Marks the end of the download queue and of the outbox
_END = object()


def new_job_id() -> str:
    return f"job_{uuid.uuid4().hex[:8]}"


class ConversionJob:
    """Handle on one running conversion.

    Everything the job needs is captured when it is created: the manifest,
    a frozen snapshot of the selection, and the options. Callers observe
    the job through ``messages()`` or the event bus and control it through
    ``pause()``, ``resume()`` and ``cancel()``. Cancelling tears the task
    down; no completion event or message is produced.
    """

    def __init__(
        self,
        source: PackSource,
        manifest: Manifest,
        selection: FrozenSet[str],
        options: ConversionOptions,
        config: Config,
        bus: EventBus,
        sink: Optional[BinaryIO] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        job_id: Optional[str] = None,
    ):
        self.job_id = job_id or new_job_id()
        self.source = source
        self.manifest = manifest
        self.selection = frozenset(selection)
        self.options = options
        self.config = config
        self.bus = bus
        self.controller = PauseController()
        self.sink = sink
        self.transport = transport

        # Later injected files with the same name replace earlier ones
        injected: Dict[str, InjectedFile] = {}
        for item in options.injected_files:
            injected[item.target_path] = item
        self.injected_files: List[InjectedFile] = list(injected.values())

        self.entries: List[FileEntry] = selected_entries(manifest, self.selection)
        # Downloads an injected file replaces are counted but never fetched
        self.shadowed: List[FileEntry] = [
            entry for entry in self.entries if entry.path in injected
        ]
        self.to_fetch: List[FileEntry] = [
            entry for entry in self.entries if entry.path not in injected
        ]

        self.full_bundle = (
            options.full_bundle
            if options.full_bundle is not None
            else is_full_selection(manifest, self.selection)
        )
        self.file_name = output_file_name(manifest, self.full_bundle)

        self.progress = JobProgress(
            total_count=len(self.entries), started_at=time.monotonic()
        )
        self.estimator = ProgressEstimator(
            total=len(self.entries), started_at=self.progress.started_at
        )
        self.scheduler: Optional[DownloadScheduler] = None
        self.result: Optional[ConversionResult] = None
        self.error: Optional[MrzipError] = None

        self._outbox: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._final_state: Optional[JobState] = None
        self._background: Set[asyncio.Task] = set()

        # Settled downloads, watched by the writer before contested overrides
        self._settled_paths: Set[str] = set()
        self._failed_paths: Set[str] = set()
        self._downloads_done = False
        self._settled = asyncio.Event()

    # Lifecycle

    @property
    def state(self) -> JobState:
        if self._final_state is not None:
            return self._final_state
        return self.controller.state

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self) -> "ConversionJob":
        """Spawn the job task. Must be called from a running event loop."""
        if self._task is not None:
            raise RuntimeError(f"Job {self.job_id} already started")
        self._task = asyncio.create_task(self._run(), name=f"mrzip-{self.job_id}")
        self._task.add_done_callback(self._on_task_done)
        return self

    def pause(self) -> bool:
        """Hold back new downloads; running ones finish."""
        if self._final_state is not None or not self.controller.pause():
            return False
        logger.info(f"Paused {self.job_id}")
        self._emit_soon(
            JobPausedEvent(job_id=self.job_id, completed=self.progress.completed_count)
        )
        return True

    def resume(self) -> bool:
        if self._final_state is not None or not self.controller.resume():
            return False
        logger.info(f"Resumed {self.job_id}")
        self._emit_soon(
            JobResumedEvent(job_id=self.job_id, completed=self.progress.completed_count)
        )
        return True

    def cancel(self) -> bool:
        """Tear the job down. Returns True only on the first effective call."""
        if self._final_state is not None:
            return False
        if not self.controller.cancel():
            return False
        logger.info(f"Cancelling {self.job_id}")
        if self._task is not None and not self._task.done():
            self._task.cancel()
        else:
            self._final_state = JobState.CANCELLED
            self._outbox.put_nowait(_END)
        return True

    async def wait(self) -> Optional[ConversionResult]:
        """Wait for the job to end.

        Returns:
            The result, or None when the job was cancelled

        Raises:
            MrzipError: The fatal error that ended the job
        """
        if self._task is None:
            raise RuntimeError(f"Job {self.job_id} was never started")
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            return None
        if self.error is not None:
            raise self.error
        return self.result

    async def messages(self) -> AsyncIterator[Response]:
        """Yield the job's responses until the terminal one.

        The stream simply ends when the job is cancelled.
        """
        while True:
            message = await self._outbox.get()
            if message is _END:
                return
            yield message
            if isinstance(message, TERMINAL_RESPONSES):
                return

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            self._final_state = JobState.CANCELLED
            self.controller.cancel()
            self._outbox.put_nowait(_END)
        elif self._final_state is None:
            # The runner died without reporting; surface it as a broken channel
            error = TransportError(f"Job {self.job_id} ended unexpectedly")
            self.error = error
            self._final_state = JobState.FAILED
            self._outbox.put_nowait(ErrorMessage(message=str(error), job_id=self.job_id))

    def _emit_soon(self, event) -> None:
        task = asyncio.get_running_loop().create_task(self.bus.emit(event))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # Runner

    async def _run(self) -> None:
        started = time.monotonic()
        own_sink = self.sink is None
        sink = tempfile.TemporaryFile() if own_sink else self.sink
        builder: Optional[ArchiveBuilder] = None

        logger.info(
            f"Starting {self.job_id}: {self.manifest.name} {self.manifest.version_id} "
            f"({len(self.entries)} files, server_mode={self.options.server_mode})"
        )
        try:
            await self.bus.emit(
                JobStartEvent(
                    job_id=self.job_id,
                    pack_name=self.manifest.name,
                    version_id=self.manifest.version_id,
                    total_files=len(self.entries),
                    server_mode=self.options.server_mode,
                )
            )
            await self._report("Copying overrides/configs...", 0)

            with open_pack(self.source) as archive:
                builder = ArchiveBuilder(
                    sink,
                    reserved=self._reserved_names(),
                    chunk_size=self.config.get(
                        "downloads.chunk_size", DownloadDefaults.CHUNK_SIZE
                    ),
                )
                summary = await self._assemble(archive, builder)

                await self._report("Compressing final archive...", self.estimator.finalizing())
                stream = builder.finalize()

            written = tuple(builder.entries)
            failed = tuple(error.path for error in summary.failed)
            self.result = ConversionResult(
                job_id=self.job_id,
                file_name=self.file_name,
                stream=stream,
                written_files=written,
                failed_files=failed,
            )
            self._final_state = JobState.COMPLETED
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                f"Finished {self.job_id}: {self.file_name} "
                f"({len(written)} entries, {len(failed)} failed downloads)"
            )
            await self.bus.emit(
                JobCompleteEvent(
                    job_id=self.job_id,
                    file_name=self.file_name,
                    written_files=len(written),
                    failed_files=len(failed),
                    duration_ms=duration_ms,
                )
            )
            await self._report("Done!", self.estimator.done(), eta=self.estimator.eta)
            self._outbox.put_nowait(
                Done(job_id=self.job_id, stream=stream, file_name=self.file_name)
            )

        except asyncio.CancelledError:
            logger.info(f"Job {self.job_id} cancelled")
            if builder is not None:
                builder.abort()
            if own_sink:
                sink.close()
            raise

        except MrzipError as e:
            await self._fail(e, builder, sink if own_sink else None)

        except Exception as e:
            logger.error(f"Unexpected error in {self.job_id}: {e}", exc_info=True)
            error = TransportError(f"Conversion failed: {e}")
            error.__cause__ = e
            await self._fail(error, builder, sink if own_sink else None)

        finally:
            self.bus.close_job_log(self.job_id)

    async def _fail(
        self,
        error: MrzipError,
        builder: Optional[ArchiveBuilder],
        own_sink: Optional[BinaryIO],
    ) -> None:
        logger.error(f"Job {self.job_id} failed: {error}")
        self.error = error
        self._final_state = JobState.FAILED
        if builder is not None:
            builder.abort()
        if own_sink is not None:
            own_sink.close()
        await self.bus.emit(
            JobFailedEvent(
                job_id=self.job_id,
                error_type=type(error).__name__,
                error_message=str(error),
            )
        )
        self._outbox.put_nowait(ErrorMessage(message=str(error), job_id=self.job_id))

    def _reserved_names(self) -> Dict[str, EntryCategory]:
        reserved: Dict[str, EntryCategory] = {
            entry.path: EntryCategory.DOWNLOAD for entry in self.to_fetch
        }
        for item in self.injected_files:
            reserved[item.target_path] = EntryCategory.INJECTED
        if self.options.server_mode:
            reserved[ScriptDefaults.SH_NAME] = EntryCategory.SCRIPT
            reserved[ScriptDefaults.BAT_NAME] = EntryCategory.SCRIPT
        return reserved

    async def _assemble(
        self, archive: zipfile.ZipFile, builder: ArchiveBuilder
    ) -> SchedulerSummary:
        """Run the downloader and the archive writer side by side.

        The writer is the only coroutine touching the builder; the
        downloader hands it spooled bodies through a queue.
        """
        queue: asyncio.Queue = asyncio.Queue()
        writer = asyncio.create_task(self._write_archive(archive, builder, queue))
        downloader = asyncio.create_task(self._download(queue))
        tasks = [writer, downloader]

        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in tasks:
                if task in done and task.exception() is not None:
                    raise task.exception()
            return downloader.result()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            while not queue.empty():
                item = queue.get_nowait()
                if isinstance(item, DownloadResult):
                    item.body.close()

    async def _download(self, queue: asyncio.Queue) -> SchedulerSummary:
        settings = self.config.get_download_settings()
        client = httpx.AsyncClient(
            timeout=settings["timeout"],
            headers={"User-Agent": settings["user_agent"]},
            follow_redirects=True,
            transport=self.transport,
        )
        async with client:
            self.scheduler = DownloadScheduler(
                client,
                self.controller,
                on_result=queue.put,
                on_settled=self._on_settled,
                bus=self.bus,
                job_id=self.job_id,
                use_cors_proxy=self.options.use_cors_proxy,
                cors_proxy=settings["cors_proxy"],
                max_retries=settings["max_retries"],
                backoff_base_delay=settings["backoff_base_delay"],
                backoff_max_delay=settings["backoff_max_delay"],
                mirror_fallback=settings["mirror_fallback"],
                chunk_size=settings["chunk_size"],
                spool_memory_bytes=settings["spool_memory_bytes"],
            )
            # Shadowed files count as settled without a request
            self.scheduler.completed = len(self.shadowed)
            self.progress.completed_count = len(self.shadowed)
            summary = await self.scheduler.run(self.to_fetch)

        self._downloads_done = True
        self._settled.set()
        await queue.put(_END)
        return summary

    async def _on_settled(
        self, entry: FileEntry, error: Optional[PerFileDownloadError], completed: int
    ) -> None:
        now = time.monotonic()
        self.progress.completed_count = completed
        self.progress.last_tick = now
        if error is not None:
            self.progress.failed_count += 1
            self._failed_paths.add(entry.path)
        self._settled_paths.add(entry.path)
        self._settled.set()

        snapshot = self.estimator.sample(completed, self.progress.total_count, now)
        if error is None:
            await self._report(
                f"Downloaded {entry.file_name}", snapshot.percent, eta=snapshot.eta
            )
        else:
            await self._report(
                f"FAILED: {entry.file_name} (Skipping)",
                snapshot.percent,
                eta=snapshot.eta,
                failed=True,
            )

    async def _write_archive(
        self, archive: zipfile.ZipFile, builder: ArchiveBuilder, queue: asyncio.Queue
    ) -> None:
        overrides = list_overrides(archive, self.options.server_mode)
        fetched = {entry.path for entry in self.to_fetch}
        # Overrides a download may replace wait until that download settles
        contested = [o for o in overrides if o.target_path in fetched]
        written = 0
        for override in overrides:
            if override.target_path not in fetched:
                written += self._copy_override(archive, builder, override)
                await asyncio.sleep(0)

        if contested:
            contested_paths = {o.target_path for o in contested}
            while not (self._downloads_done or contested_paths <= self._settled_paths):
                self._settled.clear()
                await self._settled.wait()
            for override in contested:
                if override.target_path in self._failed_paths:
                    builder.release(override.target_path, EntryCategory.DOWNLOAD)
                    written += self._copy_override(archive, builder, override)
                    await asyncio.sleep(0)

        await self.bus.emit(OverridesCopiedEvent(job_id=self.job_id, count=written))
        await self._report(
            f"Copied {written} override files", self.estimator.overrides_done()
        )

        if not self.to_fetch:
            # Nothing to download still fills the download band
            snapshot = self.estimator.sample(len(self.entries), len(self.entries))
            await self._report("No files to download", snapshot.percent, eta=snapshot.eta)

        while True:
            item = await queue.get()
            if item is _END:
                break
            try:
                builder.write_download(item.entry.path, item.body, size=item.size)
            finally:
                item.body.close()

        for injected in self.injected_files:
            builder.write_injected(injected)
            await asyncio.sleep(0)
        if self.injected_files:
            await self._report(
                f"Injected {len(self.injected_files)} files", self.estimator.percent
            )

        if self.options.server_mode:
            builder.write_scripts(self._render_scripts())
            await self._report("Generated start.sh and start.bat", self.estimator.percent)

    def _copy_override(
        self, archive: zipfile.ZipFile, builder: ArchiveBuilder, override: OverrideEntry
    ) -> bool:
        try:
            with archive.open(override.source_name) as source:
                return builder.write_override(
                    override.target_path,
                    source,
                    size=override.size,
                    date_time=override.date_time,
                )
        except (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError) as e:
            raise InvalidPackError(
                f"Cannot read override {override.source_name}: {e}"
            ) from e

    def _render_scripts(self) -> StartupScripts:
        options = self.options.script_options or self.config.get_script_options()
        options = resolve_script_options(
            options, self.manifest, self.options.selected_loader_filename
        )
        return render_scripts(options)

    async def _report(
        self,
        log: str,
        percent: int,
        eta: Optional[float] = None,
        failed: bool = False,
    ) -> None:
        await self.bus.emit(
            ProgressEvent(
                job_id=self.job_id,
                log=log,
                percent=percent,
                eta=eta,
                completed=self.progress.completed_count,
                total=self.progress.total_count,
                failed=failed,
            )
        )
        self._outbox.put_nowait(
            Progress(
                job_id=self.job_id, log=log, percent=percent, eta=eta, failed=failed
            )
        )
