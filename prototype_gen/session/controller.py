"""
Session object exposing the user-facing actions of the prototype pipeline.

Every action handles its own failures and reports the outcome as a transient
notification; none of them leaves the sequence or the held result partially
updated.
"""

import logging
import uuid
from typing import Any, Iterable, List, Optional

from prototype_gen.errors import (
    DuplicateImageError,
    EmptyResultError,
    EmptySequenceError,
    GenerationInProgressError,
    SynthesisServiceError,
)
from prototype_gen.io.archive_packager import ArchivePackager
from prototype_gen.io.image_collector import ImageCollector
from prototype_gen.models import (
    DownloadArtifact,
    GenerationResult,
    ImageEntry,
    Notification,
    NotificationLevel,
)
from prototype_gen.pipeline.synthesis import CodeSynthesizer, SynthesisService
from prototype_gen.session.sequence import ImageSequence


logger = logging.getLogger(__name__)


class PrototypeSession:
    """Owns the screen sequence and the current generation result."""

    def __init__(
        self,
        service: Optional[SynthesisService] = None,
        collector: Optional[ImageCollector] = None,
        packager: Optional[ArchivePackager] = None,
        session_id: Optional[str] = None,
    ):
        """
        Initialize a session.

        Args:
            service: Code synthesis service. Required before ``generate`` is used.
            collector: Image collector (a default one is created if not provided).
            packager: Archive packager (a default one is created if not provided).
            session_id: Identifier used in logs.
        """
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.sequence = ImageSequence()
        self.result: Optional[GenerationResult] = None
        self.collector = collector or ImageCollector()
        self.packager = packager or ArchivePackager()
        self.synthesizer = CodeSynthesizer(service) if service is not None else None
        self._notifications: List[Notification] = []
        # Bumped by clear_all so a generation that lands afterwards is discarded
        self._epoch = 0

    def __repr__(self) -> str:
        return (
            f"PrototypeSession(id={self.session_id!r}, screens={len(self.sequence)}, "
            f"has_result={self.result is not None})"
        )

    @property
    def is_generating(self) -> bool:
        return self.synthesizer is not None and self.synthesizer.in_flight

    def set_service(self, service: SynthesisService) -> None:
        """Swap the synthesis service (e.g. after a provider change)."""
        if self.is_generating:
            raise GenerationInProgressError("Cannot change the synthesis service during a generation.")
        self.synthesizer = CodeSynthesizer(service)

    def notify(self, level: NotificationLevel, title: str, message: str = "") -> None:
        self._notifications.append(Notification(level=level, title=title, message=message))

    def drain_notifications(self) -> List[Notification]:
        """Return pending notifications and forget them."""
        pending, self._notifications = self._notifications, []
        return pending

    async def ingest(self, uploads: Iterable[Any]) -> List[ImageEntry]:
        """
        Add screenshots from image files and zip archives to the end of the sequence.

        Returns:
            The entries that were appended.
        """
        result = await self.collector.collect(uploads)

        for issue in result.issues:
            self.notify(NotificationLevel.ERROR, f"Could not read {issue.name}", issue.message)

        if not result.entries:
            if not result.issues:
                self.notify(NotificationLevel.INFO, "No images found", "Upload PNG/JPEG files or a zip of them.")
            return []

        try:
            self.sequence.append(result.entries)
        except DuplicateImageError as e:
            self.notify(NotificationLevel.ERROR, "Could not add images", str(e))
            return []

        count = len(result.entries)
        self.notify(NotificationLevel.SUCCESS, "Images added", f"Added {count} screen{'s' if count != 1 else ''}.")
        return list(result.entries)

    def remove_image(self, image_id: str) -> bool:
        removed = self.sequence.remove(image_id)
        if removed:
            self.notify(NotificationLevel.INFO, "Image removed")
        return removed

    def reorder(self, from_index: int, to_index: int) -> bool:
        """Move a screen; returns False (with an error notification) for invalid positions."""
        if from_index == to_index:
            return False
        try:
            self.sequence.reorder(from_index, to_index)
        except IndexError as e:
            self.notify(NotificationLevel.ERROR, "Could not move image", str(e))
            return False
        return True

    def clear_all(self) -> None:
        """Empty the sequence and discard any generated codebase."""
        self.sequence.clear()
        self.result = None
        self._epoch += 1
        self.notify(NotificationLevel.INFO, "Cleared", "All screenshots and generated code were removed.")

    async def generate(self) -> Optional[GenerationResult]:
        """
        Generate a codebase from the current sequence.

        The previously held result is dropped as soon as the service call
        starts, so a failed regeneration leaves no result rather than a stale one.

        Returns:
            The new GenerationResult, or None if the action was rejected or failed.
        """
        if self.synthesizer is None:
            self.notify(NotificationLevel.ERROR, "Generation unavailable", "No code synthesis service is configured.")
            return None
        if self.synthesizer.in_flight:
            self.notify(NotificationLevel.WARNING, "Generation in progress", "Please wait for the current generation to finish.")
            return None
        if not self.sequence:
            self.notify(NotificationLevel.ERROR, "No screenshots", str(EmptySequenceError()))
            return None

        epoch = self._epoch
        self.result = None
        try:
            result = await self.synthesizer.synthesize(self.sequence)
        except (EmptySequenceError, GenerationInProgressError) as e:
            self.notify(NotificationLevel.WARNING, "Generation rejected", str(e))
            return None
        except SynthesisServiceError as e:
            logger.warning("Generation failed for session %s: %s", self.session_id, e)
            self.notify(NotificationLevel.ERROR, "Generation failed", str(e))
            return None

        if epoch != self._epoch:
            logger.info("Discarding generation result for session %s after clear", self.session_id)
            return None

        self.result = result
        self.notify(
            NotificationLevel.SUCCESS,
            "Codebase generated",
            f"{len(result.file_set)} files for {result.screen_count} screens.",
        )
        return result

    def download(self) -> Optional[DownloadArtifact]:
        """Package the current result as a zip archive."""
        if self.result is None:
            self.notify(NotificationLevel.ERROR, "Nothing to download", str(EmptyResultError()))
            return None
        try:
            return self.packager.package(self.result)
        except EmptyResultError as e:
            self.notify(NotificationLevel.ERROR, "Nothing to download", str(e))
            return None
