"""Tests for EventBus functionality."""

import asyncio
import json
from unittest.mock import Mock, patch

import pytest

from mrzip.core.event_bus import EventBus
from mrzip.core.events import (
    Event,
    FileFailedEvent,
    JobCompleteEvent,
    JobStartEvent,
    ProgressEvent,
)


def start_event(job_id: str = "job_1") -> JobStartEvent:
    return JobStartEvent(
        job_id=job_id, pack_name="Pack", version_id="1.0", total_files=3
    )


class TestEventBus:
    """Test EventBus core functionality."""

    @pytest.mark.asyncio
    async def test_basic_emit_subscribe(self, event_bus):
        received = []
        event_bus.subscribe(JobStartEvent, received.append)

        event = start_event()
        await event_bus.emit(event)

        assert received == [event]

    @pytest.mark.asyncio
    async def test_base_class_subscription(self, event_bus):
        received = []
        event_bus.subscribe(Event, received.append)

        await event_bus.emit(start_event())
        await event_bus.emit(
            ProgressEvent(job_id="job_1", log="Downloaded a.jar", percent=50, eta=None)
        )

        assert [type(e) for e in received] == [JobStartEvent, ProgressEvent]

    @pytest.mark.asyncio
    async def test_async_handler(self, event_bus):
        received = []

        async def handler(event):
            await asyncio.sleep(0)
            received.append(event)

        event_bus.subscribe(JobStartEvent, handler)

        event = start_event()
        await event_bus.emit(event)

        assert received == [event]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, event_bus):
        handler = Mock()
        handler.__name__ = "handler"
        event_bus.subscribe(JobStartEvent, handler)
        event_bus.unsubscribe(JobStartEvent, handler)

        await event_bus.emit(start_event())

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_handler_errors_do_not_stop_delivery(self, event_bus):
        received = []

        def broken(event):
            raise RuntimeError("boom")

        event_bus.subscribe(JobStartEvent, broken)
        event_bus.subscribe(JobStartEvent, received.append)

        with patch("mrzip.core.event_bus.logger") as mock_logger:
            await event_bus.emit(start_event())

        assert len(received) == 1
        mock_logger.error.assert_called_once()
        assert "broken" in mock_logger.error.call_args[0][0]

    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        bus = EventBus(max_history_size=3)
        for i in range(5):
            await bus.emit(start_event(f"job_{i}"))

        history = bus.get_history()
        assert [e.job_id for e in history] == ["job_2", "job_3", "job_4"]

    @pytest.mark.asyncio
    async def test_history_filter_and_clear(self, event_bus):
        await event_bus.emit(start_event())
        await event_bus.emit(
            FileFailedEvent(job_id="job_1", path="mods/a.jar", url="u", reason="HTTP 404")
        )

        assert len(event_bus.get_history(FileFailedEvent)) == 1
        event_bus.clear_history()
        assert event_bus.get_history() == []


class TestJsonlLog:
    """Test per-job JSONL event logs."""

    @pytest.mark.asyncio
    async def test_events_written_per_job(self, tmp_path):
        bus = EventBus(event_log_dir=tmp_path)

        await bus.emit(start_event("job_a"))
        await bus.emit(start_event("job_b"))
        await bus.emit(
            JobCompleteEvent(
                job_id="job_a",
                file_name="Pack-1.0.zip",
                written_files=3,
                failed_files=0,
                duration_ms=10,
            )
        )
        await bus.stop()

        lines = (tmp_path / "events_job_a.jsonl").read_text().splitlines()
        records = [json.loads(line) for line in lines]
        assert [r["event_type"] for r in records] == ["JobStartEvent", "JobCompleteEvent"]
        assert records[0]["pack_name"] == "Pack"
        assert "timestamp" in records[0]
        assert (tmp_path / "events_job_b.jsonl").exists()

    @pytest.mark.asyncio
    async def test_close_job_log(self, tmp_path):
        bus = EventBus(event_log_dir=tmp_path)
        await bus.emit(start_event("job_a"))

        bus.close_job_log("job_a")
        bus.close_job_log("job_a")

        assert bus._jsonl_files == {}

    @pytest.mark.asyncio
    async def test_no_log_without_directory(self, tmp_path, event_bus):
        await event_bus.emit(start_event())

        assert list(tmp_path.glob("*.jsonl")) == []
