"""
Ordered, user-reorderable list of screenshots.

The position of an entry is the navigation order of the generated app:
entry 0 becomes the home screen.
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from prototype_gen.errors import DuplicateImageError
from prototype_gen.models import ImageEntry


class ImageSequence:
    """Holds the current screen order and keeps image ids unique."""

    def __init__(self, entries: Optional[Iterable[ImageEntry]] = None):
        self._entries: List[ImageEntry] = []
        if entries:
            self.append(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ImageEntry]:
        return iter(tuple(self._entries))

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"ImageSequence(ids={self.ids()!r})"

    @property
    def entries(self) -> Tuple[ImageEntry, ...]:
        return tuple(self._entries)

    def ids(self) -> List[str]:
        return [entry.id for entry in self._entries]

    def sources(self) -> List[str]:
        """Image data URLs in screen order."""
        return [entry.src for entry in self._entries]

    def index_of(self, image_id: str) -> Optional[int]:
        for index, entry in enumerate(self._entries):
            if entry.id == image_id:
                return index
        return None

    def append(self, new_entries: Iterable[ImageEntry]) -> None:
        """
        Add entries to the end of the sequence, keeping their relative order.

        Nothing is appended if any id is already present or repeated in the batch.

        Raises:
            DuplicateImageError: On an id collision.
        """
        new_entries = list(new_entries)
        seen = set(self.ids())
        for entry in new_entries:
            if entry.id in seen:
                raise DuplicateImageError(f"Image id already in sequence: {entry.id}")
            seen.add(entry.id)
        self._entries.extend(new_entries)

    def remove(self, image_id: str) -> bool:
        """Delete the entry with this id. Returns False if it was not present."""
        index = self.index_of(image_id)
        if index is None:
            return False
        del self._entries[index]
        return True

    def reorder(self, from_index: int, to_index: int) -> None:
        """
        Move the entry at ``from_index`` to ``to_index``, shifting the entries between.

        Raises:
            IndexError: If either index is outside ``[0, len)``.
        """
        size = len(self._entries)
        for index in (from_index, to_index):
            if not 0 <= index < size:
                raise IndexError(f"Position {index} is outside the sequence (length {size})")
        if from_index == to_index:
            return
        entry = self._entries.pop(from_index)
        self._entries.insert(to_index, entry)

    def clear(self) -> None:
        self._entries.clear()
