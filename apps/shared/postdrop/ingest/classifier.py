"""Format classification for inbound content.

Given a declared content type and the raw body (or the parsed fields of a
multipart form), pick a decoding path and produce exactly one ``Content``
value. Ambiguous input degrades HTML → JSON → plain text instead of
failing; only strict JSON bodies and structurally broken ZIP uploads raise.
"""

import json
import logging
from dataclasses import dataclass

from postdrop.errors import InvalidArchive, ParseError
from postdrop.ingest.html_parser import is_html, parse_html
from postdrop.ingest.zip_archive import (
    MAX_ZIP_BYTES,
    ZIP_MIME_TYPES,
    extract_archive,
    is_zip_magic,
    is_zip_upload,
)
from postdrop.models.content import Content, JsonContent, TextContent

logger = logging.getLogger(__name__)

# Multipart field names searched for an uploaded file, in order.
# "file" is canonical; the rest are accepted as deprecated aliases.
CANONICAL_FILE_FIELD = "file"
FILE_FIELD_NAMES = ("file", "zipFile", "html", "zip", "archive", "upload")
ZIP_UPLOAD_FIELD = "zipFile"
JSON_FIELD = "json"

# Deeply nested documents exhaust the decoder's recursion limit
_JSON_ERRORS = (ValueError, RecursionError)


@dataclass
class UploadedFile:
    """A file part of a multipart form, already read into memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


FormField = tuple[str, str | UploadedFile]


def decode_text(data: bytes) -> str:
    """UTF-8 decode, replacing invalid sequences."""
    return data.decode("utf-8", errors="replace")


def classify_text(text: str) -> Content:
    """HTML if it looks like markup, else JSON if it parses, else plain text."""
    if is_html(text):
        return parse_html(text)
    try:
        return JsonContent(json.loads(text))
    except _JSON_ERRORS:
        return TextContent(type="text", content=text)


def classify(content_type: str, body: bytes, max_zip_bytes: int = MAX_ZIP_BYTES) -> Content:
    """Classify a raw (non-multipart) request body.

    Raises ``ParseError`` for a malformed ``application/json`` body and the
    ZIP errors for a declared or sniffed archive that fails its checks.
    """
    content_type = (content_type or "").lower()

    if "application/json" in content_type:
        try:
            return JsonContent(json.loads(body))
        except _JSON_ERRORS as e:
            raise ParseError(f"Invalid JSON body: {e}") from e

    if "text/html" in content_type or "application/x-www-form-urlencoded" in content_type:
        return classify_text(decode_text(body))

    if any(mime in content_type for mime in ZIP_MIME_TYPES):
        logger.info("Processing direct ZIP upload (%d bytes)", len(body))
        return extract_archive(body, max_bytes=max_zip_bytes)

    if "application/octet-stream" in content_type:
        if is_zip_magic(body):
            logger.info("Detected ZIP archive in octet-stream (%d bytes)", len(body))
            return extract_archive(body, max_bytes=max_zip_bytes)
        logger.debug("Octet-stream is not a ZIP, decoding as text")
        return classify_text(decode_text(body))

    return classify_text(decode_text(body))


def find_upload(fields: list[FormField]) -> tuple[str, UploadedFile] | None:
    """First uploaded file, preferring the known field names in order."""
    by_name: dict[str, UploadedFile] = {}
    for name, value in fields:
        if isinstance(value, UploadedFile) and name not in by_name:
            by_name[name] = value

    for name in FILE_FIELD_NAMES:
        if name in by_name:
            return name, by_name[name]
    for name, value in fields:
        if isinstance(value, UploadedFile):
            return name, value
    return None


def classify_form(fields: list[FormField], max_zip_bytes: int = MAX_ZIP_BYTES) -> Content:
    """Classify a parsed ``multipart/form-data`` body.

    An uploaded file decides the content: ZIP by name or MIME type, anything
    else through the text chain. Without a file, a ``json`` field is parsed
    strictly and otherwise the form itself becomes a flat JSON object.
    """
    found = find_upload(fields)
    if found is not None:
        field_name, upload = found
        if field_name != CANONICAL_FILE_FIELD:
            logger.warning(
                "Upload in deprecated field %r, use %r instead",
                field_name,
                CANONICAL_FILE_FIELD,
            )
        logger.info(
            "Found file in field %r: %s (%s, %d bytes)",
            field_name,
            upload.filename,
            upload.content_type,
            upload.size,
        )
        if is_zip_upload(upload.filename, upload.content_type):
            return extract_archive(upload.data, filename=upload.filename, max_bytes=max_zip_bytes)
        return classify_text(decode_text(upload.data))

    values = {name: value for name, value in fields if isinstance(value, str)}
    if JSON_FIELD in values:
        try:
            return JsonContent(json.loads(values[JSON_FIELD]))
        except _JSON_ERRORS as e:
            raise ParseError(f"Invalid JSON in form field {JSON_FIELD!r}: {e}") from e
    return JsonContent(values)


def classify_zip_upload(fields: list[FormField], max_zip_bytes: int = MAX_ZIP_BYTES) -> Content:
    """Dedicated ZIP upload: the ``zipFile`` field must hold a ``.zip`` file."""
    upload = next(
        (value for name, value in fields if name == ZIP_UPLOAD_FIELD and isinstance(value, UploadedFile)),
        None,
    )
    if upload is None or not upload.filename.lower().endswith(".zip"):
        raise InvalidArchive("Invalid or missing ZIP file")
    return extract_archive(upload.data, filename=upload.filename, max_bytes=max_zip_bytes)
