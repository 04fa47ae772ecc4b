"""Shared fixtures for the postdrop test suite."""
import io
import zipfile

import pytest

from postdrop.storage.kv import MemoryKeyValueStore
from postdrop.storage.post_store import PostStore


# ── Sample documents ──────────────────────────────────────────────────

SIMPLE_HTML = "<html><head><title>T</title></head><body><p>Hello world</p></body></html>"

INDEX_HTML = (
    "<html><head><title>Site</title>"
    '<link rel="stylesheet" href="style.css"></head>'
    '<body><h1>Welcome</h1><img src="img/logo.png" alt="logo">'
    '<script src="app.js"></script></body></html>'
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def build_zip_bytes(entries, compression=zipfile.ZIP_DEFLATED) -> bytes:
    """Build a ZIP in memory from an ordered mapping of path -> str | bytes."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
        for path, data in entries.items():
            archive.writestr(path, data)
    return buffer.getvalue()


@pytest.fixture
def make_zip():
    return build_zip_bytes


@pytest.fixture
def site_zip() -> bytes:
    """A small website: index page, stylesheet, script, image and a binary."""
    return build_zip_bytes({
        "index.html": INDEX_HTML,
        "style.css": "body { color: red; }",
        "app.js": "console.log('hi');",
        "img/logo.png": PNG_BYTES,
        "data.bin": b"\x00\x01\x02",
    })


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv) -> PostStore:
    return PostStore(kv, max_posts=500)
