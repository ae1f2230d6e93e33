"""
Tests for data models and service response normalization.
"""

import pytest

from prototype_gen.errors import SynthesisServiceError
from prototype_gen.models import (
    FileMapResponse,
    FileRecordsResponse,
    FileSet,
    ImageEntry,
    decode_service_response,
    normalize_path,
    parse_data_url,
    shadowed_paths,
    to_data_url,
    to_file_set,
)


def test_data_url_round_trip():
    """Test encoding bytes as a data URL and reading the parts back."""
    src = to_data_url(b"\x89PNG", "image/png")
    assert src == "data:image/png;base64,iVBORw=="
    assert parse_data_url(src) == ("image/png", "iVBORw==")


def test_image_entry_rejects_plain_url():
    with pytest.raises(ValueError):
        ImageEntry(id="1", src="https://example.com/a.png")


def test_image_entry_media_type_and_payload():
    entry = ImageEntry(id="1", src=to_data_url(b"abc", "image/jpeg"), name="a.jpg")
    assert entry.media_type == "image/jpeg"
    assert entry.payload_bytes() == b"abc"


def test_image_entry_is_immutable():
    entry = ImageEntry(id="1", src=to_data_url(b"abc", "image/png"))
    with pytest.raises(Exception):
        entry.id = "2"


@pytest.mark.parametrize("raw, expected", [
    ("src/app/page.tsx", "src/app/page.tsx"),
    ("./src/app/page.tsx", "src/app/page.tsx"),
    ("/src//app/page.tsx", "src/app/page.tsx"),
    ("src\\app\\page.tsx", "src/app/page.tsx"),
    ("", None),
    ("src/app/", None),
    ("../etc/passwd", None),
])
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


def test_file_set_normalizes_keys():
    file_set = FileSet(files={"./a/b.ts": "1"})
    assert file_set.paths() == ["a/b.ts"]
    assert file_set["a/b.ts"] == "1"


def test_file_set_rejects_invalid_path():
    with pytest.raises(ValueError):
        FileSet(files={"../outside.ts": "x"})


def test_records_last_write_wins():
    """Test that a repeated path keeps the later content."""
    raw = [
        {"path": "src/app/page.tsx", "content": "X"},
        {"path": "src/app/page.tsx", "content": "Y"},
    ]
    file_set = to_file_set(decode_service_response(raw))
    assert file_set.files == {"src/app/page.tsx": "Y"}


def test_mapping_and_records_normalize_identically():
    from_mapping = to_file_set(decode_service_response({"src/app/page.tsx": "X"}))
    from_records = to_file_set(decode_service_response([{"path": "src/app/page.tsx", "content": "X"}]))
    assert from_mapping == from_records
    assert from_mapping.files == {"src/app/page.tsx": "X"}


def test_records_missing_path_or_content_are_dropped():
    raw = {"files": [
        {"path": "", "content": "no path"},
        {"content": "no path either"},
        {"path": "src/no-content.tsx"},
        {"path": "src/empty.ts", "content": ""},
        "not a record",
        {"path": "src/app/page.tsx", "content": "ok"},
    ]}
    file_set = to_file_set(decode_service_response(raw))
    assert file_set.files == {"src/empty.ts": "", "src/app/page.tsx": "ok"}


def test_decode_files_key_variants():
    records = decode_service_response({"files": [{"path": "a.ts", "content": "1"}]})
    mapping = decode_service_response({"files": {"a.ts": "1"}})
    assert isinstance(records, FileRecordsResponse)
    assert isinstance(mapping, FileMapResponse)
    assert to_file_set(records) == to_file_set(mapping)


@pytest.mark.parametrize("raw", [None, "just text", 42])
def test_decode_malformed_payload(raw):
    with pytest.raises(SynthesisServiceError):
        decode_service_response(raw)


def test_decode_explicit_failure():
    with pytest.raises(SynthesisServiceError, match="quota exceeded"):
        decode_service_response({"success": False, "error": "quota exceeded"})

    with pytest.raises(SynthesisServiceError, match="model overloaded"):
        decode_service_response({"error": "model overloaded"})


def test_file_shadowing_a_directory_is_dropped():
    """Test that a file named like a directory of another file is left out."""
    raw = {"files": {"src": "stray", "src/app/page.tsx": "ok", "src/app": "also stray"}}
    file_set = to_file_set(decode_service_response(raw))
    assert file_set.files == {"src/app/page.tsx": "ok"}


def test_file_set_rejects_file_shadowing_directory():
    with pytest.raises(ValueError):
        FileSet(files={"a": "1", "a/b.ts": "2"})


def test_shadowed_paths():
    assert shadowed_paths(["a", "a/b.ts", "ab.ts", "c/d/e.ts", "c/d"]) == ["a", "c/d"]
