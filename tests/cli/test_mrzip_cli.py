"""Test the mrzip command line."""

import importlib
import zipfile

import pytest
from click.testing import CliRunner

from mrzip import __version__
from mrzip.cli import cli
from mrzip.engine import ConversionEngine
from tests.builders import FakeCDN, file_body, make_file_entry, make_manifest_dict, make_pack

convert_module = importlib.import_module("mrzip.cli.convert")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def pack_file(tmp_path):
    files = [
        make_file_entry("mods/alpha.jar"),
        make_file_entry("mods/beta.jar"),
        make_file_entry("mods/sodium.jar"),
    ]
    path = tmp_path / "Test.mrpack"
    path.write_bytes(
        make_pack(
            make_manifest_dict(files=files),
            overrides={"config/alpha.toml": b"enabled = true"},
            server_overrides={"server.properties": b"motd=hello"},
        )
    )
    return path


@pytest.fixture
def cdn(monkeypatch):
    cdn = FakeCDN()
    monkeypatch.setattr(
        convert_module,
        "ConversionEngine",
        lambda config: ConversionEngine(config=config, transport=cdn.transport),
    )
    return cdn


class TestCli:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("convert", "info", "config"):
            assert command in result.output


class TestInfo:
    def test_info(self, runner, pack_file):
        result = runner.invoke(cli, ["info", str(pack_file), "--files"])

        assert result.exit_code == 0
        assert "Test Pack" in result.output
        assert "Fabric" in result.output
        assert "mods/beta.jar" in result.output

    def test_invalid_pack(self, runner, tmp_path):
        bad = tmp_path / "broken.mrpack"
        bad.write_bytes(b"not a zip")

        result = runner.invoke(cli, ["info", str(bad)])

        assert result.exit_code == 1
        assert "Invalid Pack" in result.output


class TestConvert:
    def test_client_archive(self, runner, pack_file, tmp_path, cdn):
        out = tmp_path / "dist"

        result = runner.invoke(cli, ["convert", str(pack_file), "-o", str(out)])

        assert result.exit_code == 0, result.output
        archive_path = out / "Test Pack-1.0.0-FULL.zip"
        with zipfile.ZipFile(archive_path) as archive:
            names = set(archive.namelist())
            assert archive.read("mods/alpha.jar") == file_body("mods/alpha.jar")
        assert names == {
            "config/alpha.toml",
            "mods/alpha.jar",
            "mods/beta.jar",
            "mods/sodium.jar",
        }
        assert list(out.glob("*.part")) == []

    def test_server_archive(self, runner, pack_file, tmp_path, cdn):
        out = tmp_path / "dist"

        result = runner.invoke(
            cli,
            ["convert", str(pack_file), "-o", str(out), "--server", "--max-ram", "12"],
        )

        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(out / "Test Pack-1.0.0.zip") as archive:
            names = set(archive.namelist())
            start_sh = archive.read("start.sh").decode()
        assert "mods/sodium.jar" not in names
        assert "server.properties" in names
        assert "-Xmx12G" in start_sh

    def test_exclude_and_inject(self, runner, pack_file, tmp_path, cdn):
        out = tmp_path / "dist"
        extra = tmp_path / "extra.jar"
        extra.write_bytes(b"extra mod")

        result = runner.invoke(
            cli,
            [
                "convert",
                str(pack_file),
                "-o",
                str(out),
                "-x",
                "mods/beta.jar",
                "-i",
                str(extra),
            ],
        )

        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(out / "Test Pack-1.0.0.zip") as archive:
            assert "mods/beta.jar" not in archive.namelist()
            assert archive.read("mods/extra.jar") == b"extra mod"
        assert not any("beta.jar" in url for url in cdn.requests)

    def test_failed_downloads_are_listed(self, runner, pack_file, tmp_path, cdn):
        cdn.fail.add("mods/beta.jar")

        result = runner.invoke(cli, ["convert", str(pack_file), "-o", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "mods/beta.jar" in result.output

    def test_invalid_pack(self, runner, tmp_path):
        bad = tmp_path / "broken.mrpack"
        bad.write_bytes(b"not a zip")

        result = runner.invoke(cli, ["convert", str(bad), "-o", str(tmp_path)])

        assert result.exit_code == 1
        assert list(tmp_path.glob("*.zip")) == []


class TestConfigCommand:
    def test_init_and_show(self, runner, tmp_path):
        result = runner.invoke(cli, ["config", "--init"])

        assert result.exit_code == 0
        assert (tmp_path / "config" / "mrzip" / "mrzip.yaml").exists()

        result = runner.invoke(cli, ["config", "--init"])
        assert "already exists" in result.output

        result = runner.invoke(cli, ["config", "--show"])
        assert result.exit_code == 0
        assert "cors_proxy" in result.output
