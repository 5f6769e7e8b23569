"""Event types emitted while a conversion job runs."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


@dataclass
class Event:
    """Base event with timestamp and ID."""

    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), init=False
    )
    event_id: str = field(default_factory=lambda: uuid4().hex[:8], init=False)


@dataclass
class JobStartEvent(Event):
    """A conversion job has started."""

    job_id: str
    pack_name: str
    version_id: str
    total_files: int
    server_mode: bool = False


@dataclass
class OverridesCopiedEvent(Event):
    """All override entries have been written to the archive."""

    job_id: str
    count: int


@dataclass
class FileDownloadedEvent(Event):
    """A selected file was fetched successfully."""

    job_id: str
    path: str
    url: str
    size: int
    duration_ms: int


@dataclass
class FileFailedEvent(Event):
    """A selected file could not be fetched and will be skipped."""

    job_id: str
    path: str
    url: str
    reason: str
    status_code: Optional[int] = None


@dataclass
class ProgressEvent(Event):
    """Periodic status of a job."""

    job_id: str
    log: str
    percent: int
    eta: Optional[float]  # None when the remaining time is unknown
    completed: int = 0
    total: int = 0
    failed: bool = False


@dataclass
class JobPausedEvent(Event):
    """No new downloads will start until the job resumes."""

    job_id: str
    completed: int


@dataclass
class JobResumedEvent(Event):
    """Downloads may start again."""

    job_id: str
    completed: int


@dataclass
class JobCompleteEvent(Event):
    """The archive is sealed and handed to the caller."""

    job_id: str
    file_name: str
    written_files: int
    failed_files: int
    duration_ms: int


@dataclass
class JobFailedEvent(Event):
    """The job aborted with a fatal error."""

    job_id: str
    error_type: str
    error_message: str
