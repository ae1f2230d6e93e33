"""
Data models and schemas for the screen-sequence prototype pipeline.
"""

import base64
import binascii
import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from prototype_gen.errors import SynthesisServiceError


logger = logging.getLogger(__name__)

UNKNOWN_FAILURE_MESSAGE = "An unknown error occurred during code generation."


def to_data_url(data: bytes, media_type: str) -> str:
    """Encode raw bytes as a ``data:<mime>;base64,<payload>`` string."""
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(src: str) -> Tuple[str, str]:
    """
    Split a base64 data URL into its media type and payload.

    Args:
        src: Data URL of the form ``data:<mime>;base64,<payload>``.

    Returns:
        Tuple of (media_type, base64_payload).
    """
    if not src.startswith("data:") or ";base64," not in src:
        raise ValueError(f"Not a base64 data URL: {src[:40]}")
    header, payload = src[len("data:"):].split(";base64,", 1)
    return header, payload


def normalize_path(path: str) -> Optional[str]:
    """
    Normalize a generated file path to a relative, forward-slash form.

    Returns None when nothing usable remains (empty, directory-like, or
    escaping the project root with ``..``).
    """
    cleaned = path.replace("\\", "/").strip()
    if not cleaned or cleaned.endswith("/"):
        return None
    segments = [segment for segment in cleaned.split("/") if segment not in ("", ".")]
    if not segments or ".." in segments:
        return None
    return "/".join(segments)


def shadowed_paths(paths: Iterable[str]) -> List[str]:
    """
    Paths that are also a directory of another path, e.g. ``a`` next to ``a/b.ts``.

    A zip holding both a file ``a`` and a directory ``a/`` cannot be extracted.
    """
    paths = list(paths)
    directories = set()
    for path in paths:
        segments = path.split("/")[:-1]
        for depth in range(1, len(segments) + 1):
            directories.add("/".join(segments[:depth]))
    return [path for path in paths if path in directories]


class ImageEntry(BaseModel):
    """One screenshot in the sequence."""
    id: str
    src: str
    name: str = ""

    class Config:
        frozen = True

    @field_validator("src")
    @classmethod
    def _check_src(cls, value: str) -> str:
        parse_data_url(value)
        return value

    @property
    def media_type(self) -> str:
        return parse_data_url(self.src)[0]

    def payload_bytes(self) -> bytes:
        """Decode the image payload back into raw bytes."""
        try:
            return base64.b64decode(parse_data_url(self.src)[1], validate=True)
        except binascii.Error as e:
            raise ValueError(f"Image {self.id} has a corrupt payload: {e}") from e


class FileRecord(BaseModel):
    """A single file as returned in the list-shaped service response."""
    path: Optional[str] = None
    content: Optional[str] = None


class FileRecordsResponse(BaseModel):
    """Service reply shaped as an ordered list of path/content records."""
    kind: Literal["records"] = "records"
    files: List[FileRecord] = Field(default_factory=list)


class FileMapResponse(BaseModel):
    """Service reply shaped as a direct path -> content mapping."""
    kind: Literal["mapping"] = "mapping"
    files: Dict[str, str] = Field(default_factory=dict)


ServiceResponse = Annotated[
    Union[FileRecordsResponse, FileMapResponse],
    Field(discriminator="kind"),
]


class FileSet(BaseModel):
    """Canonical path -> content mapping for a generated codebase."""
    files: Dict[str, str] = Field(default_factory=dict)

    @field_validator("files")
    @classmethod
    def _normalize_paths(cls, value: Dict[str, str]) -> Dict[str, str]:
        normalized: Dict[str, str] = {}
        for path, content in value.items():
            clean = normalize_path(path)
            if clean is None:
                raise ValueError(f"Invalid file path: {path!r}")
            normalized[clean] = content
        conflicts = shadowed_paths(normalized)
        if conflicts:
            raise ValueError(f"File paths also used as directories: {conflicts}")
        return normalized

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __getitem__(self, path: str) -> str:
        return self.files[path]

    def paths(self) -> List[str]:
        return list(self.files)

    def items(self) -> Iterable[Tuple[str, str]]:
        return self.files.items()

    def is_empty(self) -> bool:
        return not self.files


def _record_from_raw(item: Any) -> FileRecord:
    if not isinstance(item, Mapping):
        return FileRecord()
    path = item.get("path")
    content = item.get("content")
    return FileRecord(
        path=path if isinstance(path, str) else None,
        content=content if isinstance(content, str) else None,
    )


def decode_service_response(raw: Any) -> ServiceResponse:
    """
    Decode a raw synthesis service payload into one of the two response shapes.

    Accepted payloads:
        - ``[{"path": ..., "content": ...}, ...]``
        - ``{"files": [...]}`` or ``{"files": {...}}``
        - ``{"src/app/page.tsx": "...", ...}``

    A mapping with ``"success": false`` or an ``"error"`` (and no ``"files"``)
    is treated as an explicit failure.

    Raises:
        SynthesisServiceError: For empty, malformed or failed replies.
    """
    if raw is None:
        raise SynthesisServiceError("Failed to generate code from the model.")

    if isinstance(raw, Mapping):
        if raw.get("success") is False or (raw.get("error") and "files" not in raw):
            message = raw.get("error") or raw.get("message") or UNKNOWN_FAILURE_MESSAGE
            raise SynthesisServiceError(str(message))
        inner = raw["files"] if isinstance(raw.get("files"), (list, Mapping)) else raw
    elif isinstance(raw, list):
        inner = raw
    else:
        raise SynthesisServiceError(
            f"Malformed response from the synthesis service: expected a file list or mapping, "
            f"got {type(raw).__name__}."
        )

    if isinstance(inner, list):
        return FileRecordsResponse(files=[_record_from_raw(item) for item in inner])

    files = {}
    for path, content in inner.items():
        if isinstance(path, str) and isinstance(content, str):
            files[path] = content
    return FileMapResponse(files=files)


def to_file_set(response: ServiceResponse) -> FileSet:
    """
    Normalize either response shape into a FileSet.

    Records with a missing/empty path or missing content are dropped, and a
    repeated path keeps the content of its last occurrence.
    """
    if isinstance(response, FileRecordsResponse):
        pairs = [(record.path, record.content) for record in response.files]
    else:
        pairs = list(response.files.items())

    files: Dict[str, str] = {}
    for path, content in pairs:
        if not path or content is None:
            continue
        clean = normalize_path(path)
        if clean is None:
            logger.warning("Dropping generated file with unusable path: %r", path)
            continue
        files[clean] = content
    for path in shadowed_paths(files):
        logger.warning("Dropping generated file that shadows a directory: %r", path)
        del files[path]
    return FileSet(files=files)


class ServiceReply(BaseModel):
    """Raw payload from the synthesis service plus call metadata."""
    payload: Any = None
    provider: Optional[str] = None
    model_name: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


class GenerationResult(BaseModel):
    """Output of one successful synthesis invocation."""
    file_set: FileSet
    screen_count: int
    generation_timestamp: datetime = Field(default_factory=datetime.now)
    provider: Optional[str] = None
    model_name: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    generation_metadata: Dict[str, Any] = Field(default_factory=dict)


class IngestionIssue(BaseModel):
    """An input that could not be ingested."""
    name: str
    message: str


class IngestionResult(BaseModel):
    """New entries produced by one ingestion batch, in screen order."""
    entries: List[ImageEntry] = Field(default_factory=list)
    issues: List[IngestionIssue] = Field(default_factory=list)


class NotificationLevel(str, Enum):
    """Severity of a user-facing notification."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """Transient message surfaced to the user after an action."""
    level: NotificationLevel
    title: str
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class DownloadArtifact(BaseModel):
    """A packaged archive ready to be offered as a download."""
    file_name: str
    data: bytes
    mime: str = "application/zip"
