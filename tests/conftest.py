"""
Shared fixtures for pipeline tests.
"""

import asyncio
import zipfile
from io import BytesIO

import pytest
from PIL import Image

from prototype_gen.io.image_collector import InputFile


def image_bytes(color="white", size=(32, 48), format="PNG"):
    """Encode a solid-color image."""
    buffer = BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format=format)
    return buffer.getvalue()


def zip_bytes(members):
    """
    Build a zip archive in memory.

    Args:
        members: (name, bytes) pairs in physical archive order; a name ending
            in "/" becomes a directory entry.
    """
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in members:
            archive.writestr(name, data)
    return buffer.getvalue()


class FakeService:
    """Synthesis service double that records every call."""

    def __init__(self, payload=None, error=None, gate=None):
        self.payload = payload
        self.error = error
        self.gate = gate
        self.calls = []

    async def generate_files(self, images):
        self.calls.append(list(images))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def png_upload():
    def make(name="screen.png", color="white"):
        return InputFile(name=name, type="image/png", data=image_bytes(color))
    return make


@pytest.fixture
def screenshot_zip():
    """Zip with b.png, a.jpg and c.jpeg (out of order) plus a directory and a text file."""
    return zip_bytes([
        ("shots/", b""),
        ("b.png", image_bytes("red")),
        ("notes.txt", b"not an image"),
        ("a.jpg", image_bytes("green", format="JPEG")),
        ("c.jpeg", image_bytes("blue", format="JPEG")),
    ])


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run
