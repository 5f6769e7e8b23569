"""End-to-end conversions through the engine and its message channel."""

import asyncio
import json
import zipfile

import pytest

from mrzip.core.events import (
    FileFailedEvent,
    JobCompleteEvent,
    JobFailedEvent,
    JobPausedEvent,
    JobResumedEvent,
    OverridesCopiedEvent,
    ProgressEvent,
)
from mrzip.core.exceptions import SchemaValidationError, SelectionError
from mrzip.core.types import ConversionOptions, InjectedFile, JobState, ScriptOptions
from mrzip.engine import (
    CancelRequest,
    ConversionEngine,
    ConvertRequest,
    Done,
    EngineChannel,
    ErrorMessage,
    ManifestRead,
    PauseRequest,
    Progress,
    ReadManifestRequest,
    ResumeRequest,
)
from tests.builders import (
    FakeCDN,
    file_body,
    make_file_entry,
    make_manifest_dict,
    make_pack,
    read_archive,
)


def three_file_pack(**manifest_kwargs):
    files = [
        make_file_entry("mods/alpha.jar"),
        make_file_entry("mods/beta.jar"),
        make_file_entry("mods/gamma.jar"),
    ]
    return make_pack(
        make_manifest_dict(files=files, **manifest_kwargs),
        overrides={"config/alpha.toml": b"enabled = true"},
        client_overrides={"options.txt": b"fov:90"},
        server_overrides={"server.properties": b"motd=hello"},
    )


async def wait_for(predicate, timeout: float = 2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.001)


@pytest.fixture
def cdn():
    return FakeCDN()


@pytest.fixture
def engine(fast_config, event_bus, cdn):
    return ConversionEngine(config=fast_config, bus=event_bus, transport=cdn.transport)


class TestClientConversion:
    @pytest.mark.asyncio
    async def test_failed_download_is_skipped(self, fast_config, event_bus):
        cdn = FakeCDN(fail={"mods/gamma.jar"})
        engine = ConversionEngine(config=fast_config, bus=event_bus, transport=cdn.transport)

        job = engine.start_conversion(three_file_pack())
        messages = [message async for message in job.messages()]
        result = await job.wait()

        entries = read_archive(result.stream)
        assert entries["config/alpha.toml"] == b"enabled = true"
        assert entries["options.txt"] == b"fov:90"
        assert entries["mods/alpha.jar"] == file_body("mods/alpha.jar")
        assert entries["mods/beta.jar"] == file_body("mods/beta.jar")
        assert "mods/gamma.jar" not in entries
        assert "server.properties" not in entries
        assert "start.sh" not in entries and "start.bat" not in entries

        assert result.failed_files == ("mods/gamma.jar",)
        assert job.state is JobState.COMPLETED

        progress = [m for m in messages if isinstance(m, Progress)]
        assert progress[0].log == "Copying overrides/configs..."
        assert progress[0].percent == 0
        assert any(m.failed and "gamma.jar" in m.log for m in progress)
        assert progress[-1].percent == 100
        assert progress[-1].log == "Done!"
        percents = [m.percent for m in progress]
        assert percents == sorted(percents)

        done = messages[-1]
        assert isinstance(done, Done)
        assert done.job_id == job.job_id
        assert done.file_name == "Test Pack-1.0.0-FULL.zip"

        assert len(event_bus.get_history(FileFailedEvent)) == 1
        assert len(event_bus.get_history(JobCompleteEvent)) == 1
        assert event_bus.get_history(OverridesCopiedEvent)[0].count == 2

    @pytest.mark.asyncio
    async def test_full_bundle_suffix(self, engine):
        job = engine.start_conversion(three_file_pack())
        result = await job.wait()

        assert result.file_name == "Test Pack-1.0.0-FULL.zip"

        job = engine.start_conversion(three_file_pack(), selection={"mods/alpha.jar"})
        result = await job.wait()

        assert result.file_name == "Test Pack-1.0.0.zip"

        job = engine.start_conversion(
            three_file_pack(), options=ConversionOptions(full_bundle=False)
        )
        result = await job.wait()

        assert result.file_name == "Test Pack-1.0.0.zip"

    @pytest.mark.asyncio
    async def test_explicit_selection(self, engine, cdn):
        job = engine.start_conversion(three_file_pack(), selection={"mods/beta.jar"})
        result = await job.wait()

        entries = read_archive(result.stream)
        assert "mods/beta.jar" in entries
        assert "mods/alpha.jar" not in entries
        assert len(cdn.requests) == 1

    @pytest.mark.asyncio
    async def test_empty_manifest(self, engine, cdn):
        pack = make_pack(make_manifest_dict(files=[]), overrides={"a.txt": b"a"})

        job = engine.start_conversion(pack)
        messages = [message async for message in job.messages()]

        assert cdn.requests == []
        assert isinstance(messages[-1], Done)
        assert read_archive(messages[-1].stream) == {"a.txt": b"a"}
        assert [m.percent for m in messages if isinstance(m, Progress)][-1] == 100
        assert all(m.eta is None for m in messages if isinstance(m, Progress))

    @pytest.mark.asyncio
    async def test_empty_selection_reports_unknown_eta(self, engine, cdn, event_bus):
        job = engine.start_conversion(three_file_pack(), selection=set())
        await job.wait()

        events = event_bus.get_history(ProgressEvent)
        assert cdn.requests == []
        assert [e.log for e in events][-2:] == ["Compressing final archive...", "Done!"]
        assert all(e.eta is None for e in events if e.completed == 0)

    @pytest.mark.asyncio
    async def test_writes_into_caller_sink(self, engine, tmp_path):
        path = tmp_path / "out.zip"
        with open(path, "w+b") as sink:
            job = engine.start_conversion(three_file_pack(), sink=sink)
            result = await job.wait()
            assert result.stream is sink

        assert "mods/alpha.jar" in read_archive(path)


class TestServerConversion:
    @pytest.mark.asyncio
    async def test_server_archive(self, engine, cdn):
        files = [
            make_file_entry("mods/lithium.jar"),
            make_file_entry(
                "mods/zoomify.jar", env={"client": "required", "server": "unsupported"}
            ),
        ]
        pack = make_pack(
            make_manifest_dict(files=files),
            overrides={"config/common.toml": b"x"},
            client_overrides={"options.txt": b"fov:90"},
            server_overrides={"server.properties": b"motd=hello"},
        )
        options = ConversionOptions(
            server_mode=True,
            script_options=ScriptOptions(min_ram=2, max_ram=6, java_flags=""),
        )

        job = engine.start_conversion(pack, options=options)
        result = await job.wait()

        entries = read_archive(result.stream)
        assert "mods/lithium.jar" in entries
        assert "mods/zoomify.jar" not in entries
        assert entries["server.properties"] == b"motd=hello"
        assert "options.txt" not in entries
        assert b"java -Xms2G -Xmx6G -jar server.jar nogui" in entries["start.sh"]
        assert entries["start.bat"].startswith(b"@echo off\r\n")
        assert all("zoomify" not in url for url in cdn.requests)

    @pytest.mark.asyncio
    async def test_scripts_win_over_overrides(self, engine):
        pack = make_pack(
            make_manifest_dict(files=[make_file_entry("mods/a.jar")]),
            overrides={"start.sh": b"echo old"},
        )

        job = engine.start_conversion(pack, options=ConversionOptions(server_mode=True))
        result = await job.wait()

        assert read_archive(result.stream)["start.sh"].startswith(b"#!/usr/bin/env bash")

    @pytest.mark.asyncio
    async def test_script_jar_follows_selected_loader(self, engine):
        options = ConversionOptions(
            server_mode=True, selected_loader_filename="fabric-server-launch.jar"
        )

        job = engine.start_conversion(three_file_pack(), options=options)
        result = await job.wait()

        assert b"-jar fabric-server-launch.jar nogui" in read_archive(result.stream)["start.sh"]


class TestCollisions:
    @pytest.mark.asyncio
    async def test_injected_files(self, engine, cdn, tmp_path):
        local_jar = tmp_path / "beta.jar"
        local_jar.write_bytes(b"local beta")
        options = ConversionOptions(
            injected_files=(
                InjectedFile.from_path(local_jar),
                InjectedFile("notes.txt", b"read me"),
            )
        )

        job = engine.start_conversion(three_file_pack(), options=options)
        result = await job.wait()

        entries = read_archive(result.stream)
        assert entries["mods/beta.jar"] == b"local beta"
        assert entries["notes.txt"] == b"read me"
        assert entries["mods/alpha.jar"] == file_body("mods/alpha.jar")
        assert not any(url.endswith("mods/beta.jar") for url in cdn.requests)

    @pytest.mark.asyncio
    async def test_downloads_win_over_overrides(self, engine):
        pack = make_pack(
            make_manifest_dict(files=[make_file_entry("mods/a.jar")]),
            overrides={"mods/a.jar": b"bundled copy"},
        )

        job = engine.start_conversion(pack)
        result = await job.wait()

        entries = read_archive(result.stream)
        assert entries["mods/a.jar"] == file_body("mods/a.jar")
        result.stream.seek(0)
        with zipfile.ZipFile(result.stream) as archive:
            assert archive.namelist().count("mods/a.jar") == 1

    @pytest.mark.asyncio
    async def test_override_kept_when_download_fails(self, fast_config, event_bus):
        cdn = FakeCDN(fail={"mods/a.jar"})
        engine = ConversionEngine(config=fast_config, bus=event_bus, transport=cdn.transport)
        pack = make_pack(
            make_manifest_dict(files=[make_file_entry("mods/a.jar"), make_file_entry("mods/b.jar")]),
            overrides={"mods/a.jar": b"bundled copy", "config/a.toml": b"x"},
        )

        job = engine.start_conversion(pack)
        result = await job.wait()

        entries = read_archive(result.stream)
        assert entries["mods/a.jar"] == b"bundled copy"
        assert entries["mods/b.jar"] == file_body("mods/b.jar")
        assert result.failed_files == ("mods/a.jar",)
        assert event_bus.get_history(OverridesCopiedEvent)[0].count == 2

    @pytest.mark.asyncio
    async def test_last_injected_file_wins(self, engine):
        options = ConversionOptions(
            injected_files=(
                InjectedFile("extra.jar", b"first"),
                InjectedFile("extra.jar", b"second"),
            )
        )

        job = engine.start_conversion(three_file_pack(), options=options)
        result = await job.wait()

        assert read_archive(result.stream)["mods/extra.jar"] == b"second"


class TestValidation:
    @pytest.mark.asyncio
    async def test_unsupported_format_version(self, engine):
        with pytest.raises(SchemaValidationError):
            engine.start_conversion(three_file_pack(format_version=2))

        assert engine.last_job is None

    @pytest.mark.asyncio
    async def test_unknown_selection(self, engine):
        with pytest.raises(SelectionError) as exc_info:
            engine.start_conversion(three_file_pack(), selection={"mods/nope.jar"})

        assert exc_info.value.unknown_paths == ["mods/nope.jar"]
        assert engine.last_job is None


class TestJobControl:
    @pytest.mark.asyncio
    async def test_cancel(self, engine, cdn, event_bus):
        gate = cdn.hold()
        job = engine.start_conversion(three_file_pack())
        await wait_for(lambda: cdn.in_flight == 3)

        assert engine.cancel() is True
        assert engine.cancel() is False
        assert job.cancel() is False

        assert await job.wait() is None
        assert job.state is JobState.CANCELLED
        assert event_bus.get_history(JobCompleteEvent) == []
        assert event_bus.get_history(JobFailedEvent) == []
        assert engine.active_job is None
        gate.set()

    @pytest.mark.asyncio
    async def test_message_stream_ends_on_cancel(self, engine, cdn):
        cdn.hold()
        job = engine.start_conversion(three_file_pack())
        await wait_for(lambda: cdn.in_flight == 3)

        job.cancel()
        messages = [m async for m in job.messages()]

        assert not any(isinstance(m, (Done, ErrorMessage)) for m in messages)

    @pytest.mark.asyncio
    async def test_new_conversion_supersedes_running_one(self, engine, cdn):
        cdn.hold()
        first = engine.start_conversion(three_file_pack())
        await wait_for(lambda: cdn.in_flight == 3)

        cdn.gate = None
        second = engine.start_conversion(three_file_pack(name="Other Pack"))

        assert await first.wait() is None
        assert first.state is JobState.CANCELLED
        result = await second.wait()
        assert result.file_name == "Other Pack-1.0.0-FULL.zip"
        assert second.job_id != first.job_id
        assert engine.last_job is second

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, engine, cdn, event_bus):
        gate = cdn.hold()
        job = engine.start_conversion(three_file_pack())
        await wait_for(lambda: cdn.in_flight == 3)

        assert engine.pause() is True
        assert engine.pause() is False
        assert job.state is JobState.PAUSED
        gate.set()

        assert engine.resume() is True
        assert engine.resume() is False
        result = await job.wait()

        assert len(result.written_files) == 5
        await wait_for(lambda: event_bus.get_history(JobResumedEvent))
        assert len(event_bus.get_history(JobPausedEvent)) == 1

    @pytest.mark.asyncio
    async def test_controls_without_job(self, engine):
        assert engine.pause() is False
        assert engine.resume() is False
        assert engine.cancel() is False

    @pytest.mark.asyncio
    async def test_progress_events_carry_job_id(self, engine, event_bus):
        job = engine.start_conversion(three_file_pack())
        await job.wait()

        events = event_bus.get_history(ProgressEvent)
        assert events
        assert {event.job_id for event in events} == {job.job_id}
        assert events[-1].percent == 100
        assert events[-1].eta == 0.0


class TestEventLog:
    @pytest.mark.asyncio
    async def test_jsonl_log_per_job(self, fast_config, cdn, tmp_path):
        log_dir = tmp_path / "events"
        fast_config.set("logging.event_log_dir", str(log_dir))
        engine = ConversionEngine(config=fast_config, transport=cdn.transport)

        job = engine.start_conversion(three_file_pack())
        await job.wait()

        records = [
            json.loads(line)
            for line in (log_dir / f"events_{job.job_id}.jsonl").read_text().splitlines()
        ]
        assert records[0]["event_type"] == "JobStartEvent"
        assert records[-1]["event_type"] == "ProgressEvent"
        assert any(r["event_type"] == "JobCompleteEvent" for r in records)


class TestChannel:
    @pytest.mark.asyncio
    async def test_read_manifest(self, engine):
        channel = EngineChannel(engine)

        [response] = [r async for r in channel.request(ReadManifestRequest(three_file_pack()))]

        assert isinstance(response, ManifestRead)
        assert response.manifest.name == "Test Pack"
        assert len(response.manifest.files) == 3

    @pytest.mark.asyncio
    async def test_read_manifest_error(self, engine):
        channel = EngineChannel(engine)

        responses = [r async for r in channel.request(ReadManifestRequest(b"not a zip"))]

        assert len(responses) == 1
        assert isinstance(responses[0], ErrorMessage)
        assert responses[0].job_id is None

    @pytest.mark.asyncio
    async def test_convert_stream(self, engine):
        channel = EngineChannel(engine)

        responses = [r async for r in channel.request(ConvertRequest(three_file_pack()))]

        assert all(isinstance(r, Progress) for r in responses[:-1])
        assert isinstance(responses[-1], Done)
        assert "mods/gamma.jar" in read_archive(responses[-1].stream)

    @pytest.mark.asyncio
    async def test_convert_rejected(self, engine):
        channel = EngineChannel(engine)
        request = ConvertRequest(three_file_pack(), selection=frozenset({"mods/nope.jar"}))

        responses = [r async for r in channel.request(request)]

        assert len(responses) == 1
        assert "mods/nope.jar" in responses[0].message

    @pytest.mark.asyncio
    async def test_control_requests(self, engine, cdn):
        channel = EngineChannel(engine)
        gate = cdn.hold()
        job = engine.start_conversion(three_file_pack())
        await wait_for(lambda: cdn.in_flight == 3)

        assert channel.send(PauseRequest()) is True
        assert [r async for r in channel.request(ResumeRequest())] == []
        assert job.state is JobState.RUNNING
        assert channel.send(CancelRequest()) is True
        assert await job.wait() is None
        gate.set()

    @pytest.mark.asyncio
    async def test_unknown_request(self, engine):
        channel = EngineChannel(engine)

        with pytest.raises(TypeError):
            [r async for r in channel.request(object())]
