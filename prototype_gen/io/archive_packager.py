"""
Packages a generated file set into a downloadable zip archive.
"""

import logging
import zipfile
from io import BytesIO
from typing import Iterable, List, Union

from prototype_gen.errors import EmptyResultError
from prototype_gen.models import DownloadArtifact, FileSet, GenerationResult


logger = logging.getLogger(__name__)

ARCHIVE_FILE_NAME = "prototype-codebase.zip"

# drwxr-xr-x plus the MS-DOS directory flag
_DIRECTORY_ATTRS = (0o40755 << 16) | 0x10


def directory_entries(paths: Iterable[str]) -> List[str]:
    """
    Directory entries implied by a set of file paths, parents first.

    ``a/b/c.ts`` implies ``a/`` and ``a/b/``.
    """
    directories = {}
    for path in paths:
        segments = path.split("/")[:-1]
        for depth in range(1, len(segments) + 1):
            directories["/".join(segments[:depth]) + "/"] = None
    return list(directories)


class ArchivePackager:
    """Builds zip archives that mirror a FileSet exactly."""

    def __init__(self, file_name: str = ARCHIVE_FILE_NAME, compression: int = zipfile.ZIP_DEFLATED):
        self.file_name = file_name
        self.compression = compression

    def build(self, file_set: FileSet) -> bytes:
        """
        Materialize the archive in memory.

        Args:
            file_set: Generated files keyed by relative path.

        Returns:
            Zip archive bytes.

        Raises:
            EmptyResultError: If the file set has no files.
        """
        if file_set.is_empty():
            raise EmptyResultError()

        buffer = BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=self.compression) as archive:
            for directory in directory_entries(file_set.paths()):
                info = zipfile.ZipInfo(directory)
                info.external_attr = _DIRECTORY_ATTRS
                archive.writestr(info, b"")
            for path, content in file_set.items():
                archive.writestr(path, content.encode("utf-8"))

        data = buffer.getvalue()
        logger.info("Packaged %d file(s) into %d bytes", len(file_set), len(data))
        return data

    def package(self, source: Union[GenerationResult, FileSet]) -> DownloadArtifact:
        """Build a fresh download artifact for the given result or file set."""
        file_set = source.file_set if isinstance(source, GenerationResult) else source
        return DownloadArtifact(
            file_name=self.file_name,
            data=self.build(file_set),
            mime="application/zip",
        )
