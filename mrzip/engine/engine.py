"""Conversion engine: the entry point for reading packs and running jobs."""

from pathlib import Path
from typing import BinaryIO, FrozenSet, Iterable, Optional

import httpx

from ..config.config import Config, get_config
from ..core.event_bus import EventBus
from ..core.types import ConversionOptions
from ..io.logger import get_logger
from ..manifest.reader import ManifestReader, PackSource
from ..manifest.schema import Manifest
from ..manifest.selection import default_selection, validate_selection
from .job import ConversionJob
from .naming import output_file_name

logger = get_logger("engine")


class ConversionEngine:
    """Owns at most one active conversion job.

    Starting a conversion cancels whatever job was running before; the
    superseded job stops producing messages and events, and its
    ``job_id`` lets observers drop anything still in flight.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        bus: Optional[EventBus] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the engine.

        Args:
            config: Configuration; the global one when omitted
            bus: Shared EventBus; a new one when omitted
            transport: httpx transport override, mainly for tests
        """
        self.config = config or get_config()
        if bus is None:
            event_log_dir = self.config.get("logging.event_log_dir")
            bus = EventBus(
                event_log_dir=Path(event_log_dir).expanduser() if event_log_dir else None
            )
        self.bus = bus
        self.transport = transport
        self.reader = ManifestReader()
        self._job: Optional[ConversionJob] = None

    @property
    def active_job(self) -> Optional[ConversionJob]:
        """The current job while it has not reached a terminal state."""
        if self._job is not None and not self._job.state.is_terminal:
            return self._job
        return None

    @property
    def last_job(self) -> Optional[ConversionJob]:
        return self._job

    def read_manifest(self, source: PackSource) -> Manifest:
        """Read and validate the manifest of a pack.

        Raises:
            InvalidPackError: Not a zip archive or no manifest inside
            SchemaValidationError: Malformed or unsupported manifest
        """
        manifest = self.reader.read(source)
        logger.info(
            f"Read manifest {manifest.name} {manifest.version_id} "
            f"({len(manifest.files)} files, {manifest.loader_display_name})"
        )
        return manifest

    def default_selection(self, manifest: Manifest, server_mode: bool = False) -> FrozenSet[str]:
        return default_selection(
            manifest,
            server_mode=server_mode,
            client_only_keywords=self.config.get("selection.client_only_keywords"),
        )

    @staticmethod
    def output_file_name(manifest: Manifest, full: bool = False) -> str:
        return output_file_name(manifest, full)

    def start_conversion(
        self,
        source: PackSource,
        manifest: Optional[Manifest] = None,
        selection: Optional[Iterable[str]] = None,
        options: Optional[ConversionOptions] = None,
        sink: Optional[BinaryIO] = None,
    ) -> ConversionJob:
        """Cancel any running job and start a new one.

        Must be called from a running event loop. Manifest and selection
        problems raise here, before any job exists.

        Raises:
            InvalidPackError: When the manifest has to be read and cannot be
            SchemaValidationError: When the manifest is invalid
            SelectionError: When the selection names unknown paths
        """
        if self._job is not None and self._job.cancel():
            logger.info(f"Superseded {self._job.job_id}")

        options = options or ConversionOptions()
        if manifest is None:
            manifest = self.read_manifest(source)
        else:
            manifest = self.reader.validate(manifest)

        if selection is None:
            snapshot = self.default_selection(manifest, options.server_mode)
        else:
            snapshot = validate_selection(manifest, selection)

        job = ConversionJob(
            source,
            manifest,
            snapshot,
            options,
            config=self.config,
            bus=self.bus,
            sink=sink,
            transport=self.transport,
        )
        self._job = job
        return job.start()

    def pause(self) -> bool:
        job = self.active_job
        return job.pause() if job is not None else False

    def resume(self) -> bool:
        job = self.active_job
        return job.resume() if job is not None else False

    def cancel(self) -> bool:
        job = self.active_job
        return job.cancel() if job is not None else False
