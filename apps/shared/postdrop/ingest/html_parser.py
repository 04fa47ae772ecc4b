"""HTML metadata extraction.

Parses a document once with BeautifulSoup and runs independent passes over
the tree for title, description, links, headings, images and complexity.
"""

import logging
import re

from bs4 import BeautifulSoup

from postdrop.models.content import (
    Heading,
    HtmlContent,
    HtmlErrorContent,
    HtmlMetadata,
    Image,
    Link,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Document"
DESCRIPTION_MAX_CHARS = 150

# Complexity thresholds
MAX_SIMPLE_CLASSED = 10
MAX_SIMPLE_STYLED = 5
MAX_SIMPLE_LENGTH = 5000

_TAG_OPEN_RE = re.compile(r"<[a-z]", re.IGNORECASE)
_SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_HANDLER_DQ_RE = re.compile(r"on\w+=\"[^\"]*\"", re.IGNORECASE)
_HANDLER_SQ_RE = re.compile(r"on\w+='[^']*'", re.IGNORECASE)
_HANDLER_BARE_RE = re.compile(r"on\w+=\w+", re.IGNORECASE)


def is_html(text: str) -> bool:
    """Cheap check: does the text contain something that looks like a tag?

    A ``<`` followed by a letter, with a ``>`` somewhere after it. Runs in
    linear time on any input.
    """
    match = _TAG_OPEN_RE.search(text)
    return match is not None and text.find(">", match.end()) != -1


def parse_html(html: str) -> HtmlContent | HtmlErrorContent:
    """Extract structured metadata from an HTML document.

    Never raises: markup the parser chokes on comes back as an
    ``HtmlErrorContent`` carrying the original HTML.
    """
    try:
        soup = BeautifulSoup(html, "lxml")
        has_scripts = soup.find("script") is not None
        has_styles = bool(soup.select("link[rel~=stylesheet]")) or soup.find("style") is not None
        has_iframes = soup.find("iframe") is not None

        metadata = HtmlMetadata(
            title=_title(soup),
            description=_description(soup),
            links=_links(soup),
            headings=_headings(soup),
            images=_images(soup),
            has_scripts=has_scripts,
            has_styles=has_styles,
            has_iframes=has_iframes,
            complexity=(
                "complex"
                if has_scripts or has_styles or has_iframes or _is_structurally_complex(soup, html)
                else "simple"
            ),
        )
        body = soup.body if soup.body is not None else soup
        return HtmlContent(
            type="html",
            metadata=metadata,
            html=html,
            text_content=body.get_text().strip(),
        )
    except Exception:
        logger.warning("Failed to parse HTML content (%d chars)", len(html), exc_info=True)
        return HtmlErrorContent(type="html", error="Failed to parse HTML content", html=html)


def sanitize_html(html: str) -> str:
    """Best-effort strip of ``<script>`` blocks and inline ``on*=`` handlers.

    Pattern based; not a security boundary.
    """
    html = _SCRIPT_BLOCK_RE.sub("", html)
    html = _HANDLER_DQ_RE.sub("", html)
    html = _HANDLER_SQ_RE.sub("", html)
    return _HANDLER_BARE_RE.sub("", html)


# ──────────────────────────────────────────────
# Extraction passes
# ──────────────────────────────────────────────

def _title(soup: BeautifulSoup) -> str:
    title = soup.find("title")
    if title and title.get_text():
        return title.get_text()
    h1 = soup.find("h1")
    if h1 and h1.get_text():
        return h1.get_text()
    return DEFAULT_TITLE


def _description(soup: BeautifulSoup) -> str:
    meta = soup.select_one('meta[name="description"]')
    if meta and meta.get("content"):
        return meta["content"]
    p = soup.find("p")
    if p:
        return p.get_text()[:DESCRIPTION_MAX_CHARS]
    return ""


def _links(soup: BeautifulSoup) -> list[Link]:
    links = []
    for a in soup.find_all("a"):
        href = a.get("href")
        if href:
            links.append(Link(href=href, text=a.get_text().strip() or href))
    return links


def _headings(soup: BeautifulSoup) -> list[Heading]:
    return [
        Heading(level=int(tag.name[1]), text=tag.get_text().strip())
        for tag in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
    ]


def _images(soup: BeautifulSoup) -> list[Image]:
    return [Image(src=img.get("src") or "", alt=img.get("alt") or "") for img in soup.find_all("img")]


def _is_structurally_complex(soup: BeautifulSoup, html: str) -> bool:
    if len(html) > MAX_SIMPLE_LENGTH:
        return True
    if len(soup.find_all(class_=True)) > MAX_SIMPLE_CLASSED:
        return True
    if len(soup.find_all(style=True)) > MAX_SIMPLE_STYLED:
        return True
    return any(
        attr.startswith("data-")
        for tag in soup.find_all(True)
        for attr in tag.attrs
    )
