"""Message channel in front of a ConversionEngine."""

from typing import AsyncIterator

from ..core.exceptions import MrzipError
from ..io.logger import get_logger
from .engine import ConversionEngine
from .messages import (
    CancelRequest,
    ConvertRequest,
    ErrorMessage,
    ManifestRead,
    PauseRequest,
    ReadManifestRequest,
    Request,
    Response,
    ResumeRequest,
)

logger = get_logger("channel")


class EngineChannel:
    """Speaks the request/response protocol on behalf of an engine.

    ``request()`` yields the responses a request produces: a single
    ManifestRead or ErrorMessage for ReadManifestRequest, a stream of
    Progress messages ending in Done or ErrorMessage for ConvertRequest.
    Pause, resume and cancel only change state and yield nothing.
    """

    def __init__(self, engine: ConversionEngine = None):
        self.engine = engine or ConversionEngine()

    async def request(self, message: Request) -> AsyncIterator[Response]:
        if isinstance(message, ReadManifestRequest):
            try:
                manifest = self.engine.read_manifest(message.source)
            except MrzipError as e:
                logger.warning(f"Cannot read manifest: {e}")
                yield ErrorMessage(message=str(e))
                return
            yield ManifestRead(manifest=manifest)

        elif isinstance(message, ConvertRequest):
            try:
                job = self.engine.start_conversion(
                    message.source,
                    manifest=message.manifest,
                    selection=message.selection,
                    options=message.options,
                    sink=message.sink,
                )
            except MrzipError as e:
                logger.warning(f"Conversion not started: {e}")
                yield ErrorMessage(message=str(e))
                return
            async for response in job.messages():
                yield response

        elif isinstance(message, (PauseRequest, ResumeRequest, CancelRequest)):
            self.send(message)

        else:
            raise TypeError(f"Unknown request: {type(message).__name__}")

    def send(self, message: Request) -> bool:
        """Deliver a control request. Returns whether the job state changed."""
        if isinstance(message, PauseRequest):
            return self.engine.pause()
        if isinstance(message, ResumeRequest):
            return self.engine.resume()
        if isinstance(message, CancelRequest):
            return self.engine.cancel()
        raise TypeError(f"{type(message).__name__} is not a control request")
