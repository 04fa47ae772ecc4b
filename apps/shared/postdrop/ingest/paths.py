"""Relative path resolution inside a ZIP archive.

References found in an archive's HTML (``href``/``src``) are resolved against
the directory of the file that contains them, producing keys into the
archive's ``fileContents`` map.
"""

import re

# scheme: (http:, https:, data:, mailto: ...) or protocol-relative //host
_EXTERNAL_RE = re.compile(r"^(?:[a-z][a-z0-9+.\-]*:|//)", re.IGNORECASE)


def is_external(ref: str) -> bool:
    """True for absolute URLs and ``data:`` URIs, which are never resolved."""
    return bool(_EXTERNAL_RE.match(ref))


def base_dir(path: str) -> str:
    """Directory part of an archive path, with a trailing slash.

    >>> base_dir("site/pages/about.html")
    'site/pages/'
    >>> base_dir("index.html")
    ''
    """
    head, sep, _ = path.rpartition("/")
    return head + sep


def resolve_relative_path(base: str, ref: str) -> str:
    """Resolve ``ref`` against the archive directory ``base``.

    ``./x`` and bare ``x`` are appended to ``base``; each leading ``../``
    drops one trailing segment of ``base`` (walking above the archive root
    stays at the root); ``/x`` is relative to the archive root.
    """
    if ref.startswith("./"):
        return base + ref[2:]

    if ref.startswith("../"):
        parts = [p for p in base.split("/") if p]
        for segment in ref.split("/"):
            if segment == "..":
                if parts:
                    parts.pop()
            elif segment != ".":
                parts.append(segment)
        return "/".join(parts)

    if ref.startswith("/"):
        return ref[1:]

    return base + ref
