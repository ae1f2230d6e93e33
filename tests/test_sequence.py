"""
Tests for the ordered screen sequence.
"""

import random

import pytest

from prototype_gen.errors import DuplicateImageError
from prototype_gen.models import ImageEntry, to_data_url
from prototype_gen.session.sequence import ImageSequence


def make_entries(*ids):
    return [ImageEntry(id=image_id, src=to_data_url(image_id.encode(), "image/png")) for image_id in ids]


@pytest.fixture
def sequence():
    return ImageSequence(make_entries("a", "b", "c", "d"))


def test_append_preserves_order(sequence):
    sequence.append(make_entries("e", "f"))
    assert sequence.ids() == ["a", "b", "c", "d", "e", "f"]
    assert len(sequence) == 6


def test_append_rejects_duplicates_without_partial_update(sequence):
    with pytest.raises(DuplicateImageError):
        sequence.append(make_entries("e", "b"))
    with pytest.raises(DuplicateImageError):
        sequence.append(make_entries("x", "x"))
    assert sequence.ids() == ["a", "b", "c", "d"]


def test_remove(sequence):
    assert sequence.remove("b") is True
    assert sequence.ids() == ["a", "c", "d"]


def test_remove_missing_is_noop(sequence):
    assert sequence.remove("zzz") is False
    assert sequence.ids() == ["a", "b", "c", "d"]


def test_reorder_forward_and_back(sequence):
    sequence.reorder(0, 2)
    assert sequence.ids() == ["b", "c", "a", "d"]

    sequence.reorder(3, 0)
    assert sequence.ids() == ["d", "b", "c", "a"]


def test_reorder_round_trip_restores_order(sequence):
    original = sequence.ids()
    for i, j in [(0, 3), (1, 2), (3, 1), (2, 0)]:
        sequence.reorder(i, j)
        sequence.reorder(j, i)
        assert sequence.ids() == original


def test_reorder_same_position_is_noop(sequence):
    before = sequence.entries
    sequence.reorder(2, 2)
    assert sequence.entries == before


@pytest.mark.parametrize("from_index, to_index", [(-1, 0), (0, 4), (4, 0), (0, -1)])
def test_reorder_rejects_out_of_range(sequence, from_index, to_index):
    with pytest.raises(IndexError):
        sequence.reorder(from_index, to_index)
    assert sequence.ids() == ["a", "b", "c", "d"]


def test_clear(sequence):
    sequence.clear()
    assert len(sequence) == 0
    assert not sequence
    assert sequence.sources() == []


def test_sources_follow_sequence_order(sequence):
    sequence.reorder(3, 0)
    assert sequence.sources() == [entry.src for entry in make_entries("d", "a", "b", "c")]


def test_random_operations_keep_ids_unique():
    """Appended minus removed ids survive any mix of operations, without duplicates."""
    rng = random.Random(7)
    sequence = ImageSequence()
    appended, removed = set(), set()
    counter = 0

    for _ in range(300):
        op = rng.choice(["append", "remove", "reorder"])
        if op == "append":
            batch = [f"img{counter + k}" for k in range(rng.randint(1, 3))]
            counter += len(batch)
            sequence.append(make_entries(*batch))
            appended.update(batch)
        elif op == "remove" and appended:
            target = rng.choice(sorted(appended))
            if sequence.remove(target):
                removed.add(target)
        elif op == "reorder" and len(sequence) > 1:
            sequence.reorder(rng.randrange(len(sequence)), rng.randrange(len(sequence)))

        ids = sequence.ids()
        assert len(ids) == len(set(ids))
        assert set(ids) == appended - removed
