"""Tests for core exceptions module."""

import pytest

from mrzip.core.exceptions import (
    ArchiveWriteError,
    InvalidPackError,
    MrzipError,
    PerFileDownloadError,
    SchemaValidationError,
    SelectionError,
    TransportError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            InvalidPackError,
            SchemaValidationError,
            ArchiveWriteError,
            TransportError,
        ],
    )
    def test_simple_errors_are_mrzip_errors(self, cls):
        with pytest.raises(MrzipError):
            raise cls("Test error")

    def test_base_is_exception(self):
        assert issubclass(MrzipError, Exception)


class TestSchemaValidationError:
    def test_message_without_details(self):
        error = SchemaValidationError("Invalid manifest")

        assert str(error) == "Invalid manifest"
        assert error.errors == []

    def test_message_with_details(self):
        error = SchemaValidationError("Invalid manifest", ["name: required", "game: bad"])

        assert str(error) == "Invalid manifest: name: required; game: bad"
        assert error.errors == ["name: required", "game: bad"]


class TestSelectionError:
    def test_lists_unknown_paths_sorted(self):
        error = SelectionError({"mods/b.jar", "mods/a.jar"})

        assert error.unknown_paths == ["mods/a.jar", "mods/b.jar"]
        assert "mods/a.jar, mods/b.jar" in str(error)

    def test_truncates_long_lists(self):
        error = SelectionError({f"mods/{i}.jar" for i in range(8)})

        assert "(+3 more)" in str(error)


class TestPerFileDownloadError:
    def test_attributes(self):
        error = PerFileDownloadError(
            "mods/a.jar", "https://cdn.example.com/a.jar", "HTTP 404", status_code=404
        )

        assert error.path == "mods/a.jar"
        assert error.url == "https://cdn.example.com/a.jar"
        assert error.reason == "HTTP 404"
        assert error.status_code == 404
        assert str(error) == (
            "Failed to download mods/a.jar from https://cdn.example.com/a.jar: HTTP 404"
        )

    def test_status_is_optional(self):
        error = PerFileDownloadError("mods/a.jar", "u", "connection reset")

        assert error.status_code is None
