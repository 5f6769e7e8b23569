"""Core types, events and job control for mrzip."""

from .event_bus import EventBus
from .events import *
from .exceptions import (
    ArchiveWriteError,
    InvalidPackError,
    MrzipError,
    PerFileDownloadError,
    SchemaValidationError,
    SelectionError,
    TransportError,
)
from .pause_controller import PauseController
from .progress_estimator import ProgressEstimator, format_eta
from .types import *

__all__ = [
    # From event_bus
    'EventBus',

    # From events
    'Event',
    'JobStartEvent',
    'OverridesCopiedEvent',
    'FileDownloadedEvent',
    'FileFailedEvent',
    'ProgressEvent',
    'JobPausedEvent',
    'JobResumedEvent',
    'JobCompleteEvent',
    'JobFailedEvent',

    # From exceptions
    'MrzipError',
    'InvalidPackError',
    'SchemaValidationError',
    'SelectionError',
    'PerFileDownloadError',
    'ArchiveWriteError',
    'TransportError',

    # Job control
    'PauseController',
    'ProgressEstimator',
    'format_eta',

    # From types
    'JobState',
    'ScriptOptions',
    'InjectedFile',
    'ConversionOptions',
    'JobProgress',
    'ConversionResult',
]
