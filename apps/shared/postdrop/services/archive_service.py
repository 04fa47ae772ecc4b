"""Archive services: ZIP download and per-file rendering.

Rendering an archive's HTML file inlines the assets it references from the
same archive (images as ``data:`` URIs, stylesheets as ``<style>``, scripts
as inline ``<script>``) so the page displays without further requests.
"""

import base64
import logging

from bs4 import BeautifulSoup

from postdrop.errors import NotAnArchive, NotFound
from postdrop.ingest.html_parser import sanitize_html
from postdrop.ingest.paths import base_dir, is_external, resolve_relative_path
from postdrop.ingest.zip_archive import build_zip
from postdrop.models.content import FileContent, ZipArchiveContent
from postdrop.models.post import Post

logger = logging.getLogger(__name__)


def require_archive(post: Post) -> ZipArchiveContent:
    """The post's archive content. Raises ``NotAnArchive`` for anything else."""
    if not isinstance(post.content, ZipArchiveContent):
        raise NotAnArchive()
    return post.content


def build_download(post: Post) -> tuple[str, bytes]:
    """Rebuild the ZIP for an archive post. Returns (filename, zip bytes)."""
    archive = require_archive(post)
    filename = archive.metadata.filename or f"download-{post.id}.zip"
    data = build_zip(archive.file_contents)
    logger.info("Built ZIP download for %s (%d files, %d bytes)", post.id, len(archive.file_contents), len(data))
    return filename, data


def render_archive_file(
    archive: ZipArchiveContent,
    path: str,
    sanitize: bool = False,
) -> tuple[bytes, str]:
    """Serve one file of an archive. Returns (body, media type).

    HTML files come back with their same-archive assets inlined; everything
    else is returned as stored.
    """
    entry = archive.file_contents.get(path)
    if entry is None:
        raise NotFound(path)

    if entry.type != "text/html":
        return base64.b64decode(entry.content), entry.type

    html = base64.b64decode(entry.content).decode("utf-8", errors="replace")
    rendered = inline_archive_assets(html, path, archive.file_contents)
    if sanitize:
        rendered = sanitize_html(rendered)
    return rendered.encode("utf-8"), "text/html; charset=utf-8"


def inline_archive_assets(html: str, path: str, file_contents: dict[str, FileContent]) -> str:
    """Rewrite references in ``html`` (located at ``path``) to inline archive assets."""
    soup = BeautifulSoup(html, "lxml")
    base = base_dir(path)

    for img in soup.find_all("img"):
        src = img.get("src")
        if not src:
            if img.has_attr("src"):
                del img["src"]
            if not img.get("alt"):
                img["alt"] = "Image with missing source"
            continue
        if is_external(src):
            continue
        entry = file_contents.get(resolve_relative_path(base, src))
        if entry is None:
            del img["src"]
            img["alt"] = f"Missing image: {src}"
            continue
        img["src"] = f"data:{entry.type};base64,{entry.content}"

    for link in soup.select("link[rel~=stylesheet]"):
        href = link.get("href")
        if not href or is_external(href):
            continue
        entry = file_contents.get(resolve_relative_path(base, href))
        if entry is None:
            logger.debug("Stylesheet %s not in archive", href)
            continue
        style = soup.new_tag("style")
        style.string = _decode(entry)
        link.replace_with(style)

    for script in soup.find_all("script", src=True):
        src = script["src"]
        if is_external(src):
            continue
        entry = file_contents.get(resolve_relative_path(base, src))
        if entry is None:
            logger.debug("Script %s not in archive", src)
            continue
        inline = soup.new_tag("script")
        inline.string = _decode(entry)
        script.replace_with(inline)

    return str(soup)


def _decode(entry: FileContent) -> str:
    return base64.b64decode(entry.content).decode("utf-8", errors="replace")
