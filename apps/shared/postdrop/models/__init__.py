"""Data models for postdrop."""

from postdrop.models.content import (
    ArchiveMetadata,
    Content,
    FileContent,
    FileEntry,
    Heading,
    HtmlContent,
    HtmlErrorContent,
    HtmlMetadata,
    Image,
    JsonContent,
    Link,
    TextContent,
    ZipArchiveContent,
    content_kind,
)
from postdrop.models.post import Pagination, Post, PostPage

__all__ = [
    "ArchiveMetadata",
    "Content",
    "FileContent",
    "FileEntry",
    "Heading",
    "HtmlContent",
    "HtmlErrorContent",
    "HtmlMetadata",
    "Image",
    "JsonContent",
    "Link",
    "Pagination",
    "Post",
    "PostPage",
    "TextContent",
    "ZipArchiveContent",
    "content_kind",
]
