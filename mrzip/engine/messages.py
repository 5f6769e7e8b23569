"""Messages exchanged with the conversion engine.

Requests go in, responses come out; both are immutable so nothing the
caller holds can change a running job.
"""

from dataclasses import dataclass
from typing import BinaryIO, ClassVar, FrozenSet, Optional, Union

from ..core.types import ConversionOptions
from ..manifest.reader import PackSource
from ..manifest.schema import Manifest


class MessageKind:
    """Wire names of the message kinds."""

    READ_MANIFEST = "READ_MANIFEST"
    CONVERT = "CONVERT"
    PAUSE = "PAUSE"
    RESUME = "RESUME"
    CANCEL = "CANCEL"
    MANIFEST_READ = "MANIFEST_READ"
    PROGRESS = "PROGRESS"
    DONE = "DONE"
    ERROR = "ERROR"


# Requests


@dataclass(frozen=True)
class ReadManifestRequest:
    kind: ClassVar[str] = MessageKind.READ_MANIFEST

    source: PackSource


@dataclass(frozen=True)
class ConvertRequest:
    kind: ClassVar[str] = MessageKind.CONVERT

    source: PackSource
    manifest: Optional[Manifest] = None
    options: ConversionOptions = ConversionOptions()
    selection: Optional[FrozenSet[str]] = None
    sink: Optional[BinaryIO] = None


@dataclass(frozen=True)
class PauseRequest:
    kind: ClassVar[str] = MessageKind.PAUSE


@dataclass(frozen=True)
class ResumeRequest:
    kind: ClassVar[str] = MessageKind.RESUME


@dataclass(frozen=True)
class CancelRequest:
    kind: ClassVar[str] = MessageKind.CANCEL


# Responses


@dataclass(frozen=True)
class ManifestRead:
    kind: ClassVar[str] = MessageKind.MANIFEST_READ

    manifest: Manifest


@dataclass(frozen=True)
class Progress:
    kind: ClassVar[str] = MessageKind.PROGRESS

    job_id: str
    log: str
    percent: int
    eta: Optional[float]
    failed: bool = False


@dataclass(frozen=True)
class Done:
    kind: ClassVar[str] = MessageKind.DONE

    job_id: str
    stream: BinaryIO
    file_name: str


@dataclass(frozen=True)
class ErrorMessage:
    kind: ClassVar[str] = MessageKind.ERROR

    message: str
    job_id: Optional[str] = None


Request = Union[
    ReadManifestRequest, ConvertRequest, PauseRequest, ResumeRequest, CancelRequest
]
Response = Union[ManifestRead, Progress, Done, ErrorMessage]

TERMINAL_RESPONSES = (Done, ErrorMessage)
