"""Progress bar handler for conversion jobs."""

from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
)

from ..core.event_bus import EventBus
from ..core.events import (
    FileFailedEvent,
    JobCompleteEvent,
    JobFailedEvent,
    JobPausedEvent,
    JobResumedEvent,
    JobStartEvent,
    ProgressEvent,
)
from ..core.progress_estimator import format_eta
from .display_utils import NORD_COLORS


class ProgressDisplay:
    """Renders the events of one job as a rich progress bar.

    Events of other jobs (a superseded job still winding down) are
    ignored.
    """

    def __init__(self, bus: EventBus, console: Console, job_id: Optional[str] = None,
                 verbose: bool = False):
        """Initialize progress display.

        Args:
            bus: Event bus to subscribe to
            console: Rich console for output
            job_id: Only show this job; the first started job when None
            verbose: Also print every downloaded file
        """
        self.bus = bus
        self.console = console
        self.job_id = job_id
        self.verbose = verbose
        self.failures = 0
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[#4c566a]ETA {task.fields[eta]}"),
            console=console,
        )
        self.task: Optional[TaskID] = None

        self._handlers = [
            (JobStartEvent, self.handle_job_start),
            (ProgressEvent, self.handle_progress),
            (FileFailedEvent, self.handle_file_failed),
            (JobPausedEvent, self.handle_paused),
            (JobResumedEvent, self.handle_resumed),
            (JobCompleteEvent, self.handle_finished),
            (JobFailedEvent, self.handle_finished),
        ]
        for event_type, handler in self._handlers:
            bus.subscribe(event_type, handler)

    def start(self):
        self.progress.start()
        self.task = self.progress.add_task("Starting...", total=100, eta="unknown")

    def stop(self):
        self.progress.stop()
        for event_type, handler in self._handlers:
            self.bus.unsubscribe(event_type, handler)

    def __enter__(self) -> "ProgressDisplay":
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.stop()

    def _is_mine(self, job_id: str) -> bool:
        if self.job_id is None:
            self.job_id = job_id
        return job_id == self.job_id

    def handle_job_start(self, event: JobStartEvent):
        if not self._is_mine(event.job_id):
            return
        mode = "server" if event.server_mode else "client"
        self.console.print(
            f"[{NORD_COLORS['nord7']}]◆ {event.pack_name} {event.version_id}: "
            f"{event.total_files} files ({mode})[/{NORD_COLORS['nord7']}]"
        )

    def handle_progress(self, event: ProgressEvent):
        if not self._is_mine(event.job_id) or self.task is None:
            return
        self.progress.update(
            self.task,
            completed=event.percent,
            description=event.log,
            eta=format_eta(event.eta),
        )
        if self.verbose and not event.failed:
            self.console.print(f"[{NORD_COLORS['nord3']}]  {event.log}[/{NORD_COLORS['nord3']}]")

    def handle_file_failed(self, event: FileFailedEvent):
        if not self._is_mine(event.job_id):
            return
        self.failures += 1
        self.console.print(
            f"[{NORD_COLORS['nord13']}]⚠ Skipped {event.path}: {event.reason}"
            f"[/{NORD_COLORS['nord13']}]"
        )

    def handle_paused(self, event: JobPausedEvent):
        if self._is_mine(event.job_id) and self.task is not None:
            self.progress.update(self.task, description="Paused")

    def handle_resumed(self, event: JobResumedEvent):
        if self._is_mine(event.job_id) and self.task is not None:
            self.progress.update(self.task, description="Resuming...")

    def handle_finished(self, event):
        if self._is_mine(event.job_id) and self.task is not None:
            self.progress.refresh()
