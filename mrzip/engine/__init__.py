"""Conversion engine, jobs and the message protocol."""

from .channel import EngineChannel
from .engine import ConversionEngine
from .job import ConversionJob
from .messages import (
    TERMINAL_RESPONSES,
    CancelRequest,
    ConvertRequest,
    Done,
    ErrorMessage,
    ManifestRead,
    MessageKind,
    PauseRequest,
    Progress,
    ReadManifestRequest,
    Request,
    Response,
    ResumeRequest,
)
from .naming import output_file_name

__all__ = [
    "CancelRequest",
    "ConversionEngine",
    "ConversionJob",
    "ConvertRequest",
    "Done",
    "EngineChannel",
    "ErrorMessage",
    "ManifestRead",
    "MessageKind",
    "PauseRequest",
    "Progress",
    "ReadManifestRequest",
    "Request",
    "Response",
    "ResumeRequest",
    "TERMINAL_RESPONSES",
    "output_file_name",
]
