"""Streaming zip writer for the output archive."""

import io
import shutil
import time
import zipfile
from collections import Counter
from enum import IntEnum
from typing import BinaryIO, Dict, List, Mapping, Optional, Tuple

from ..core.constants import DownloadDefaults
from ..core.exceptions import ArchiveWriteError
from ..core.types import InjectedFile
from ..io.logger import get_logger
from .scripts import StartupScripts

logger = get_logger("archive")


class EntryCategory(IntEnum):
    """Write categories, in the only order the builder accepts them.

    The order doubles as collision precedence: a name reserved by a later
    category is never written by an earlier one.
    """

    OVERRIDE = 0
    DOWNLOAD = 1
    INJECTED = 2
    SCRIPT = 3


class ArchiveBuilder:
    """Writes one zip archive into a sink, one entry at a time.

    Each entry is copied from a file-like source in fixed-size chunks, so
    memory use is bounded by the chunk size rather than by the archive.
    Writes are not thread safe; a single coroutine is expected to issue
    them.
    """

    def __init__(
        self,
        sink: BinaryIO,
        reserved: Optional[Mapping[str, EntryCategory]] = None,
        compression: int = zipfile.ZIP_DEFLATED,
        chunk_size: int = DownloadDefaults.CHUNK_SIZE,
    ):
        """Open the archive.

        Args:
            sink: Writable binary stream receiving the archive
            reserved: Names that a later category will write, mapped to it
            compression: zipfile compression method
            chunk_size: Copy buffer size
        """
        self.sink = sink
        self.compression = compression
        self.chunk_size = chunk_size
        self._reserved: Dict[str, EntryCategory] = dict(reserved or {})
        self._written: Dict[str, EntryCategory] = {}
        self._category = EntryCategory.OVERRIDE
        self._finalized = False
        self.skipped: List[Tuple[str, EntryCategory]] = []
        try:
            self._zip = zipfile.ZipFile(sink, mode="w", compression=compression)
        except (OSError, ValueError) as e:
            raise ArchiveWriteError(f"Cannot open output archive: {e}") from e

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def entries(self) -> Dict[str, EntryCategory]:
        """Names written so far and their category."""
        return dict(self._written)

    def counts(self) -> Counter:
        return Counter(self._written.values())

    def reserve(self, name: str, category: EntryCategory) -> None:
        """Claim ``name`` for ``category`` ahead of time."""
        current = self._reserved.get(name)
        if current is None or category > current:
            self._reserved[name] = category

    def release(self, name: str, category: EntryCategory) -> None:
        """Drop the claim of ``category`` on ``name``, e.g. after its download failed."""
        if self._reserved.get(name) is category:
            del self._reserved[name]

    def write_override(
        self,
        name: str,
        source: BinaryIO,
        size: Optional[int] = None,
        date_time: Optional[Tuple[int, ...]] = None,
    ) -> bool:
        return self._write(EntryCategory.OVERRIDE, name, source, size=size, date_time=date_time)

    def write_download(self, path: str, source: BinaryIO, size: Optional[int] = None) -> bool:
        return self._write(EntryCategory.DOWNLOAD, path, source, size=size)

    def write_injected(self, injected: InjectedFile) -> bool:
        try:
            size = injected.size
            with injected.open() as source:
                return self._write(
                    EntryCategory.INJECTED, injected.target_path, source, size=size
                )
        except OSError as e:
            raise ArchiveWriteError(f"Cannot read injected file {injected.name}: {e}") from e

    def write_scripts(self, scripts: StartupScripts) -> None:
        for name, content, mode in scripts.entries():
            data = content.encode("utf-8")
            self._write(
                EntryCategory.SCRIPT, name, io.BytesIO(data), size=len(data), mode=mode
            )

    def _write(
        self,
        category: EntryCategory,
        name: str,
        source: BinaryIO,
        size: Optional[int] = None,
        mode: int = 0o644,
        date_time: Optional[Tuple[int, ...]] = None,
    ) -> bool:
        """Stream one entry. Returns False when a later category owns the name."""
        if self._finalized:
            raise ArchiveWriteError(f"Archive already finalized, cannot write {name}")
        if category < self._category:
            raise ArchiveWriteError(
                f"Cannot write {category.name.lower()} entry {name} after "
                f"{self._category.name.lower()} entries"
            )
        self._category = category

        owner = self._reserved.get(name)
        if owner is not None and owner > category:
            logger.debug(
                f"Skipping {category.name.lower()} {name}: "
                f"superseded by {owner.name.lower()} entry"
            )
            self.skipped.append((name, category))
            return False

        info = zipfile.ZipInfo(name, date_time=date_time or time.localtime()[:6])
        info.compress_type = self.compression
        info.external_attr = (0o100000 | mode) << 16
        if size is not None:
            info.file_size = size

        try:
            with self._zip.open(info, mode="w") as dest:
                shutil.copyfileobj(source, dest, self.chunk_size)
        except (OSError, ValueError, RuntimeError, zipfile.LargeZipFile) as e:
            raise ArchiveWriteError(f"Failed writing {name} to archive: {e}") from e

        self._written[name] = category
        return True

    def finalize(self) -> BinaryIO:
        """Seal the archive and hand back the sink, rewound when possible."""
        if self._finalized:
            raise ArchiveWriteError("Archive already finalized")
        try:
            self._zip.close()
            self.sink.flush()
            if self.sink.seekable():
                self.sink.seek(0)
        except (OSError, ValueError) as e:
            raise ArchiveWriteError(f"Failed to finalize archive: {e}") from e
        finally:
            self._finalized = True
        logger.debug(f"Finalized archive with {len(self._written)} entries")
        return self.sink

    def abort(self) -> None:
        """Stop writing and close the zip; the sink holds no usable result."""
        if self._finalized:
            return
        self._finalized = True
        try:
            self._zip.close()
        except (OSError, ValueError, RuntimeError) as e:
            logger.debug(f"Ignoring error while aborting archive: {e}")
