"""Pydantic schema for the modrinth.index.json manifest."""

from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..core.constants import (
    SUPPORTED_FORMAT_VERSIONS,
    SUPPORTED_GAMES,
    Loaders,
)

EnvLevel = Literal["required", "optional", "unsupported"]


def check_relative_path(path: str) -> str:
    """Reject paths that would escape the archive root."""
    if not path or path.startswith(("/", "\\")) or "\\" in path:
        raise ValueError(f"path must be a relative POSIX path, got {path!r}")
    parts = PurePosixPath(path).parts
    if ".." in parts or (parts and parts[0].endswith(":")):
        raise ValueError(f"path must stay inside the pack, got {path!r}")
    return path


class FileHashes(BaseModel):
    """Integrity digests. Carried through, never verified."""

    model_config = ConfigDict(extra="allow", frozen=True)

    sha1: str = Field(strict=True)
    sha512: str = Field(strict=True)


class FileEnv(BaseModel):
    """Per-side requirement levels."""

    model_config = ConfigDict(frozen=True)

    client: EnvLevel
    server: EnvLevel


class FileEntry(BaseModel):
    """A remote file referenced by the manifest."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str = Field(strict=True)
    hashes: FileHashes
    env: Optional[FileEnv] = None
    # May be empty; such a file fails on its own when fetched
    downloads: Tuple[str, ...]
    file_size: int = Field(alias="fileSize", ge=0, strict=True)

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return check_relative_path(v)

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def primary_url(self) -> Optional[str]:
        return self.downloads[0] if self.downloads else None


class Manifest(BaseModel):
    """A validated pack manifest. Never mutated after validation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    format_version: int = Field(alias="formatVersion", strict=True)
    game: str = Field(strict=True)
    version_id: str = Field(alias="versionId", strict=True)
    name: str = Field(strict=True)
    summary: Optional[str] = None
    files: Tuple[FileEntry, ...]
    dependencies: Mapping[str, str]

    @field_validator("format_version")
    @classmethod
    def validate_format_version(cls, v: int) -> int:
        if v not in SUPPORTED_FORMAT_VERSIONS:
            supported = ", ".join(str(s) for s in SUPPORTED_FORMAT_VERSIONS)
            raise ValueError(
                f"Unsupported formatVersion {v}. Supported: {supported}"
            )
        return v

    @field_validator("game")
    @classmethod
    def validate_game(cls, v: str) -> str:
        if v not in SUPPORTED_GAMES:
            raise ValueError(f"Unsupported game '{v}'")
        return v

    @field_validator("dependencies")
    @classmethod
    def validate_dependencies(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        if Loaders.GAME_DEPENDENCY not in v:
            raise ValueError(
                f"dependencies must include a '{Loaders.GAME_DEPENDENCY}' version"
            )
        return MappingProxyType(dict(v))

    @field_serializer("dependencies")
    def serialize_dependencies(self, v: Mapping[str, str]) -> Dict[str, str]:
        return dict(v)

    @property
    def game_version(self) -> str:
        return self.dependencies[Loaders.GAME_DEPENDENCY]

    @property
    def loader(self) -> Optional[str]:
        """Dependency key of the mod loader, if any."""
        for key in self.dependencies:
            if key in Loaders.DISPLAY_NAMES:
                return key
        return None

    @property
    def loader_display_name(self) -> str:
        if self.loader is None:
            return "Unknown"
        return Loaders.DISPLAY_NAMES[self.loader]

    @property
    def loader_version(self) -> Optional[str]:
        return self.dependencies.get(self.loader) if self.loader else None

    @property
    def paths(self) -> List[str]:
        return [entry.path for entry in self.files]

    @property
    def total_size(self) -> int:
        return sum(entry.file_size for entry in self.files)

    def to_dict(self) -> dict:
        """Dump in the on-disk (camelCase) shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
