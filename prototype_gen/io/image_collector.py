"""
Utilities for turning uploaded screenshots and zip archives into image entries.
"""

import asyncio
import logging
import mimetypes
import uuid
import zipfile
import zlib
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, List, Optional, Tuple, Union

from PIL import Image

from prototype_gen.errors import ArchiveIngestionError
from prototype_gen.models import (
    ImageEntry,
    IngestionIssue,
    IngestionResult,
    to_data_url,
)


logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")
ARCHIVE_MEDIA_TYPES = frozenset({"application/zip", "application/x-zip-compressed"})

# Errors zipfile raises for truncated, corrupt, encrypted or unsupported members
_ARCHIVE_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    IndexError,
    OSError,
    RuntimeError,
    NotImplementedError,
    ValueError,
)


@dataclass
class InputFile:
    """In-memory upload with the same surface as Streamlit's ``UploadedFile``."""
    name: str
    type: str
    data: bytes

    def getvalue(self) -> bytes:
        return self.data

    @classmethod
    def from_path(cls, path: Union[str, Path], media_type: Optional[str] = None) -> "InputFile":
        """
        Load a file from disk.

        Args:
            path: File to read.
            media_type: Declared media type; guessed from the extension if omitted.

        Returns:
            InputFile with the file's bytes.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Input not found: {path}")
        if media_type is None:
            media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, type=media_type, data=path.read_bytes())


def new_entry_id() -> str:
    """Return a fresh process-unique image id."""
    return uuid.uuid4().hex


def classify_media_type(media_type: Optional[str]) -> Optional[str]:
    """Return "image", "archive" or None for a declared media type."""
    base = (media_type or "").split(";", 1)[0].strip().lower()
    if base.startswith("image/"):
        return "image"
    if base in ARCHIVE_MEDIA_TYPES:
        return "archive"
    return None


def is_image_member(info: zipfile.ZipInfo) -> bool:
    """Whether an archive member is a screenshot to ingest."""
    return not info.is_dir() and info.filename.lower().endswith(IMAGE_EXTENSIONS)


async def read_upload(upload: Any) -> bytes:
    """Read the full content of a file-like upload off the event loop."""
    if hasattr(upload, "getvalue"):
        return await asyncio.to_thread(upload.getvalue)
    if hasattr(upload, "seek"):
        await asyncio.to_thread(upload.seek, 0)
    return await asyncio.to_thread(upload.read)


class ImageCollector:
    """Converts user uploads into an ordered batch of ImageEntry values."""

    def __init__(self, sniff_media_type: bool = True):
        """
        Initialize the collector.

        Args:
            sniff_media_type: Detect archive member formats with Pillow instead
                of trusting the file extension alone.
        """
        self.sniff_media_type = sniff_media_type

    async def collect(self, uploads: Iterable[Any]) -> IngestionResult:
        """
        Ingest a batch of uploads.

        Inputs are read concurrently but the result keeps input order; each
        archive contributes its images sorted by member name. Inputs with an
        unsupported media type are skipped, and a corrupt archive is reported
        as an issue without affecting the other inputs.

        Args:
            uploads: File-like objects with ``name``, ``type`` and ``getvalue()``.

        Returns:
            IngestionResult with the new entries and per-input issues.
        """
        uploads = list(uploads)
        outcomes = await asyncio.gather(*(self._collect_one(upload) for upload in uploads))

        result = IngestionResult()
        for entries, issue in outcomes:
            result.entries.extend(entries)
            if issue is not None:
                result.issues.append(issue)

        logger.info(
            "Ingested %d image(s) from %d input(s), %d issue(s)",
            len(result.entries), len(uploads), len(result.issues),
        )
        return result

    async def _collect_one(self, upload: Any) -> Tuple[List[ImageEntry], Optional[IngestionIssue]]:
        name = getattr(upload, "name", "") or "upload"
        media_type = getattr(upload, "type", None)
        kind = classify_media_type(media_type)

        if kind is None:
            logger.debug("Skipping %s with unsupported media type %r", name, media_type)
            return [], None

        try:
            data = await read_upload(upload)
        except Exception as e:
            logger.warning("Could not read %s: %s", name, e)
            return [], IngestionIssue(name=name, message=f"Could not read file: {e}")

        if kind == "image":
            base_type = media_type.split(";", 1)[0].strip().lower()
            return [self._make_entry(name, data, base_type)], None

        try:
            return await self.collect_archive(name, data), None
        except ArchiveIngestionError as e:
            logger.warning("Archive %s rejected: %s", name, e)
            return [], IngestionIssue(name=name, message=str(e))

    async def collect_archive(self, name: str, data: bytes) -> List[ImageEntry]:
        """
        Extract the screenshots of one zip archive in member-name order.

        Raises:
            ArchiveIngestionError: If the archive or any selected member is unreadable.
        """
        try:
            archive = await asyncio.to_thread(zipfile.ZipFile, BytesIO(data))
        except _ARCHIVE_READ_ERRORS as e:
            raise ArchiveIngestionError(f"{name} is not a valid zip archive: {e}") from e

        entries = []
        with archive:
            try:
                members = self.select_members(archive)
            except _ARCHIVE_READ_ERRORS as e:
                raise ArchiveIngestionError(f"{name} has an unreadable member list: {e}") from e
            for info in members:
                try:
                    payload = await asyncio.to_thread(archive.read, info)
                except _ARCHIVE_READ_ERRORS as e:
                    raise ArchiveIngestionError(
                        f"Could not extract {info.filename} from {name}: {e}"
                    ) from e
                media_type = self.guess_media_type(info.filename, payload)
                entries.append(self._make_entry(PurePosixPath(info.filename).name, payload, media_type))
        return entries

    @staticmethod
    def select_members(archive: zipfile.ZipFile) -> List[zipfile.ZipInfo]:
        """Image members of an open archive, sorted by name."""
        infos = archive.infolist()
        if any(not info.filename for info in infos):
            raise zipfile.BadZipFile("member with an empty name")
        return sorted((info for info in infos if is_image_member(info)), key=lambda info: info.filename)

    def guess_media_type(self, filename: str, payload: bytes) -> str:
        """Media type of an archive member, sniffed from its bytes when possible."""
        if self.sniff_media_type:
            try:
                with Image.open(BytesIO(payload)) as image:
                    mime = Image.MIME.get(image.format or "")
            except (OSError, Image.DecompressionBombError):
                mime = None
            if mime and mime.startswith("image/"):
                return mime

        if PurePosixPath(filename).suffix.lower() == ".png":
            return "image/png"
        return "image/jpeg"

    @staticmethod
    def _make_entry(name: str, data: bytes, media_type: str) -> ImageEntry:
        return ImageEntry(id=new_entry_id(), src=to_data_url(data, media_type), name=name)
