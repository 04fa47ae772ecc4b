"""Ingestion: format classification, HTML metadata and ZIP extraction."""

from postdrop.ingest.classifier import (
    UploadedFile,
    classify,
    classify_form,
    classify_text,
    classify_zip_upload,
)
from postdrop.ingest.html_parser import is_html, parse_html, sanitize_html
from postdrop.ingest.paths import base_dir, is_external, resolve_relative_path
from postdrop.ingest.zip_archive import build_zip, extract_archive, is_zip_magic

__all__ = [
    "UploadedFile",
    "base_dir",
    "build_zip",
    "classify",
    "classify_form",
    "classify_text",
    "classify_zip_upload",
    "extract_archive",
    "is_external",
    "is_html",
    "is_zip_magic",
    "parse_html",
    "resolve_relative_path",
    "sanitize_html",
]
