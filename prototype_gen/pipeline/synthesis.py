"""
Submits the ordered screen sequence to a code synthesis service and
normalizes whatever file set shape comes back.
"""

import logging
import time
from typing import Any, Iterable, List, Protocol

from prototype_gen.errors import (
    EmptySequenceError,
    GenerationInProgressError,
    SynthesisServiceError,
)
from prototype_gen.models import (
    UNKNOWN_FAILURE_MESSAGE,
    GenerationResult,
    ImageEntry,
    ServiceReply,
    decode_service_response,
    to_file_set,
)


logger = logging.getLogger(__name__)


class SynthesisService(Protocol):
    """
    External code synthesis capability.

    ``generate_files`` receives the screenshots as data URLs in screen order
    (index 0 is the home screen) and returns either a ServiceReply or the raw
    payload: a list of ``{"path", "content"}`` records or a path -> content
    mapping.
    """

    async def generate_files(self, images: List[str]) -> Any:
        ...


class CodeSynthesizer:
    """Runs one synthesis invocation at a time."""

    def __init__(self, service: SynthesisService):
        self.service = service
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def synthesize(self, entries: Iterable[ImageEntry]) -> GenerationResult:
        """
        Generate a codebase from the screens in order.

        Args:
            entries: The screen sequence (an ImageSequence or any iterable of entries).

        Returns:
            GenerationResult holding the normalized FileSet.

        Raises:
            GenerationInProgressError: If another invocation is still pending.
            EmptySequenceError: If there are no screens; the service is not called.
            SynthesisServiceError: If the call fails or the reply has no usable files.
        """
        if self._in_flight:
            raise GenerationInProgressError()

        images = [entry.src for entry in entries]
        if not images:
            raise EmptySequenceError()

        self._in_flight = True
        try:
            start_time = time.time()
            logger.info("Requesting codebase for %d screen(s)", len(images))
            try:
                reply = await self.service.generate_files(images)
            except SynthesisServiceError:
                raise
            except Exception as e:
                logger.exception("Synthesis service call failed")
                raise SynthesisServiceError(str(e) or UNKNOWN_FAILURE_MESSAGE) from e

            if not isinstance(reply, ServiceReply):
                reply = ServiceReply(payload=reply)

            file_set = to_file_set(decode_service_response(reply.payload))
            if file_set.is_empty():
                raise SynthesisServiceError("The synthesis service returned no usable files.")

            latency_ms = (time.time() - start_time) * 1000
            logger.info("Received %d file(s) in %.1fms", len(file_set), latency_ms)

            return GenerationResult(
                file_set=file_set,
                screen_count=len(images),
                provider=reply.provider,
                model_name=reply.model_name,
                prompt_tokens=reply.prompt_tokens,
                completion_tokens=reply.completion_tokens,
                generation_metadata={"latency_ms": latency_ms},
            )
        finally:
            self._in_flight = False
