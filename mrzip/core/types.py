"""Core data types for mrzip conversions.

The manifest itself is a pydantic model (see ``mrzip.manifest.schema``);
the types here describe a single conversion job: what the caller asked
for and how far the job has come.
"""

import io
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

from .constants import (
    INJECTED_MODS_PREFIX,
    MOD_ARCHIVE_SUFFIX,
    ScriptDefaults,
)


class JobState(str, Enum):
    """Lifecycle states of a conversion job."""

    RUNNING = "running"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.CANCELLED, JobState.COMPLETED, JobState.FAILED)


@dataclass(frozen=True)
class ScriptOptions:
    """Parameters of the generated server startup scripts.

    Values are taken as given; min_ram > max_ram is the caller's problem.
    """

    min_ram: int = ScriptDefaults.MIN_RAM
    max_ram: int = ScriptDefaults.MAX_RAM
    java_flags: str = ScriptDefaults.JAVA_FLAGS
    server_jar_name: str = ScriptDefaults.SERVER_JAR


@dataclass(frozen=True)
class InjectedFile:
    """A caller-supplied file merged into the output archive."""

    name: str
    source: Union[Path, bytes]

    def __post_init__(self):
        if not self.name or self.name in (".", "..") or "/" in self.name or "\\" in self.name:
            raise ValueError(f"Injected file name must be a plain file name, got {self.name!r}")

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "InjectedFile":
        path = Path(path)
        return cls(name=path.name, source=path)

    @property
    def target_path(self) -> str:
        """Archive path: mod archives go under mods/, anything else at the root."""
        if self.name.lower().endswith(MOD_ARCHIVE_SUFFIX):
            return f"{INJECTED_MODS_PREFIX}{self.name}"
        return self.name

    @property
    def size(self) -> int:
        if isinstance(self.source, (bytes, bytearray)):
            return len(self.source)
        return Path(self.source).stat().st_size

    def open(self) -> BinaryIO:
        """Open the content for streaming."""
        if isinstance(self.source, (bytes, bytearray)):
            return io.BytesIO(self.source)
        return open(self.source, "rb")


@dataclass(frozen=True)
class ConversionOptions:
    """Options captured once when a job starts."""

    server_mode: bool = False
    selected_loader_filename: Optional[str] = None
    use_cors_proxy: bool = False
    script_options: Optional[ScriptOptions] = None
    injected_files: Tuple[InjectedFile, ...] = ()
    # None: decide from the selection (full when every file is selected)
    full_bundle: Optional[bool] = None


@dataclass
class JobProgress:
    """Raw progress counters of a running job."""

    total_count: int
    started_at: float
    completed_count: int = 0
    failed_count: int = 0
    last_tick: Optional[float] = None


@dataclass
class ConversionResult:
    """What a completed job hands back to the caller."""

    job_id: str
    file_name: str
    stream: BinaryIO
    written_files: Tuple[str, ...] = field(default_factory=tuple)
    failed_files: Tuple[str, ...] = field(default_factory=tuple)
