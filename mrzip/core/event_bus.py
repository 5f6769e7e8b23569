"""Central event distribution system."""

import asyncio
import json
import os
import threading
from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from ..io.logger import get_logger
from .constants import SystemDefaults
from .events import Event

logger = get_logger("event_bus")


T = TypeVar("T", bound=Event)


class EventBus:
    """Publish/subscribe hub shared by the engine and its observers."""

    def __init__(
        self,
        event_log_dir: Optional[Path] = None,
        max_history_size: int = SystemDefaults.MAX_EVENT_HISTORY,
    ):
        """Initialize EventBus.

        Args:
            event_log_dir: Optional directory for per-job JSONL event logs
            max_history_size: Maximum number of events to keep in history
        """
        self.subscribers: Dict[Type[Event], List[Callable]] = defaultdict(list)
        self.event_history: List[Event] = []
        self.max_history_size = max_history_size
        self.event_log_dir = event_log_dir
        self._jsonl_files: Dict[str, Any] = {}  # job_id -> file handle
        self._jsonl_lock = threading.RLock()
        self._history_lock = threading.RLock()
        self._subscriber_lock = threading.RLock()

    def _serialize_value(self, value: Any) -> Any:
        """Convert a value to a JSON-serializable format."""
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        if isinstance(value, Enum):
            return value.value
        if hasattr(value, "isoformat"):
            return value.isoformat()
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(item) for item in value]
        if isinstance(value, dict):
            return {k: self._serialize_value(v) for k, v in value.items()}
        return str(value)

    def _get_jsonl_file(self, job_id: str):
        """Get or create JSONL file handle for a job."""
        with self._jsonl_lock:
            if job_id not in self._jsonl_files:
                log_dir = Path(self.event_log_dir)
                log_dir.mkdir(parents=True, exist_ok=True)
                log_path = log_dir / f"events_{job_id}.jsonl"
                self._jsonl_files[job_id] = open(log_path, "a", buffering=1)
            return self._jsonl_files[job_id]

    def _write_to_jsonl(self, event: Event, event_data: dict):
        job_id = getattr(event, "job_id", None)
        if not job_id:
            return

        with self._jsonl_lock:
            try:
                jsonl_file = self._get_jsonl_file(job_id)
                jsonl_file.write(json.dumps(event_data, separators=(",", ":")))
                jsonl_file.write("\n")
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Error writing to JSONL: {e}")

    async def emit(self, event: Event) -> None:
        """Emit an event to all subscribers.

        Args:
            event: The event to emit
        """
        with self._history_lock:
            self.event_history.append(event)
            if len(self.event_history) > self.max_history_size:
                self.event_history = self.event_history[-self.max_history_size :]

        if self.event_log_dir:
            event_data = {
                k: self._serialize_value(v)
                for k, v in event.__dict__.items()
                if k not in ("timestamp", "event_id")
            }
            event_data["timestamp"] = event.timestamp.isoformat()
            event_data["event_type"] = type(event).__name__
            self._write_to_jsonl(event, event_data)

        handlers = []
        with self._subscriber_lock:
            for event_type, handler_list in self.subscribers.items():
                if isinstance(event, event_type):
                    handlers.extend(handler_list)

        for handler in handlers:
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(event)
                else:
                    handler(event)
            except Exception as e:
                # Log but don't crash on handler errors
                error_msg = f"Error in event handler {handler.__name__}: {e}"
                if os.getenv("MRZIP_DEBUG"):
                    logger.error(error_msg, exc_info=True)
                else:
                    logger.error(error_msg)

    def subscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        """Subscribe to events of a specific type.

        Args:
            event_type: The type of event to subscribe to
            handler: The function to call when event is emitted
        """
        with self._subscriber_lock:
            self.subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        """Unsubscribe from events.

        Args:
            event_type: The type of event to unsubscribe from
            handler: The handler to remove
        """
        with self._subscriber_lock:
            if handler in self.subscribers[event_type]:
                self.subscribers[event_type].remove(handler)

    def get_history(self, event_type: Type[T] = None) -> List[Event]:
        """Get event history, optionally filtered by type."""
        with self._history_lock:
            if event_type is None:
                return self.event_history.copy()
            return [e for e in self.event_history if isinstance(e, event_type)]

    def clear_history(self) -> None:
        with self._history_lock:
            self.event_history.clear()

    def close_job_log(self, job_id: str) -> None:
        """Close the JSONL file of a finished job."""
        with self._jsonl_lock:
            handle = self._jsonl_files.pop(job_id, None)
            if handle is not None:
                try:
                    handle.close()
                except OSError as e:
                    logger.error(f"Error closing JSONL file for {job_id}: {e}")

    async def stop(self):
        """Close all open event logs."""
        with self._jsonl_lock:
            for job_id in list(self._jsonl_files):
                self.close_job_log(job_id)
