"""ZIP archive extraction.

Turns an uploaded ZIP into a self-contained ``ZipArchiveContent``: every
entry is inlined as base64 under its original path, classified by suffix,
and the main HTML file is parsed for metadata.
"""

import base64
import io
import logging
import zipfile
import zlib

from postdrop.errors import InvalidArchive, NoHtmlInArchive, PayloadTooLarge
from postdrop.ingest.html_parser import parse_html
from postdrop.models.content import (
    ArchiveMetadata,
    FileContent,
    FileEntry,
    ZipArchiveContent,
)

logger = logging.getLogger(__name__)

MAX_ZIP_BYTES = 10 * 1024 * 1024
DEFAULT_FILENAME = "uploaded.zip"
ZIP_MIME_TYPES = ("application/zip", "application/x-zip-compressed")

# Suffix → MIME type. First match wins.
EXT_TO_MIME = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
}
DEFAULT_MIME = "application/octet-stream"

# Errors a single entry can raise while being read
_ENTRY_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, OSError, EOFError, ValueError)


def is_zip_magic(data: bytes) -> bool:
    """Check the 4-byte PK signature.

    Accepts local file header (PK\\x03\\x04), empty archive / end of central
    directory (PK\\x05\\x06) and spanned archive (PK\\x07\\x08) prefixes.
    """
    return (
        len(data) >= 4
        and data[0] == 0x50
        and data[1] == 0x4B
        and data[2] in (0x03, 0x05, 0x07)
        and data[3] in (0x04, 0x06, 0x08)
    )


def is_zip_upload(filename: str | None, content_type: str | None) -> bool:
    """Does an uploaded file declare itself as a ZIP, by name or MIME type?"""
    if filename and filename.lower().endswith(".zip"):
        return True
    return bool(content_type) and any(mime in content_type for mime in ZIP_MIME_TYPES)


def mime_type_for(path: str) -> str:
    """MIME type of an archive entry, from its filename suffix only."""
    lower = path.lower()
    for ext, mime in EXT_TO_MIME.items():
        if lower.endswith(ext):
            return mime
    return DEFAULT_MIME


def select_main_file(html_files: list[str]) -> str:
    """Pick the archive's main HTML file.

    An ``index.html`` (at any depth, either separator) wins; otherwise the
    first HTML file in archive order.
    """
    for path in html_files:
        if path == "index.html" or path.endswith("/index.html") or path.endswith("\\index.html"):
            return path
    return html_files[0]


def check_zip_payload(data: bytes, max_bytes: int = MAX_ZIP_BYTES) -> None:
    """Size cap then signature check. Both run before any decompression."""
    if len(data) > max_bytes:
        raise PayloadTooLarge(max_bytes)
    if not is_zip_magic(data):
        raise InvalidArchive("The uploaded file is not a valid ZIP archive")


def extract_archive(
    data: bytes,
    filename: str | None = None,
    max_bytes: int = MAX_ZIP_BYTES,
) -> ZipArchiveContent:
    """Extract a ZIP upload into a ``ZipArchiveContent``.

    Raises ``PayloadTooLarge``, ``InvalidArchive`` or ``NoHtmlInArchive``.
    Entries that fail to decompress are logged and left out.
    """
    check_zip_payload(data, max_bytes)

    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zlib.error, OSError, EOFError, ValueError) as e:
        logger.warning("Could not open ZIP archive (%d bytes): %s", len(data), e)
        raise InvalidArchive("Failed to process ZIP file") from e

    files: dict[str, bytes] = {}
    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            try:
                files[info.filename] = archive.read(info)
            except _ENTRY_ERRORS as e:
                logger.warning("Skipping unreadable ZIP entry %s: %s", info.filename, e)

    file_types = {path: mime_type_for(path) for path in files}
    html_files = [p for p, mime in file_types.items() if mime == "text/html"]
    js_files = [p for p, mime in file_types.items() if mime == "text/javascript"]
    css_files = [p for p, mime in file_types.items() if mime == "text/css"]

    if not html_files:
        logger.info("No HTML files found in ZIP (%d entries)", len(files))
        raise NoHtmlInArchive()

    main_file = select_main_file(html_files)
    parsed = parse_html(files[main_file].decode("utf-8", errors="replace"))

    logger.info(
        "Extracted ZIP %s: %d files, %d HTML, main=%s",
        filename or DEFAULT_FILENAME,
        len(files),
        len(html_files),
        main_file,
    )
    return ZipArchiveContent(
        type="zip-archive",
        main_file=main_file,
        files=[
            FileEntry(path=path, type=file_types[path], size=len(content))
            for path, content in files.items()
        ],
        file_contents={
            path: FileContent(
                type=file_types[path],
                content=base64.b64encode(content).decode("ascii"),
            )
            for path, content in files.items()
        },
        html=parsed,
        metadata=ArchiveMetadata(
            filename=filename or DEFAULT_FILENAME,
            size=len(data),
            file_count=len(files),
            html_files=html_files,
            js_files=js_files,
            css_files=css_files,
        ),
    )


def build_zip(file_contents: dict[str, FileContent]) -> bytes:
    """Rebuild a ZIP byte stream from base64 file contents."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path, entry in file_contents.items():
            archive.writestr(path, base64.b64decode(entry.content))
    return buffer.getvalue()
