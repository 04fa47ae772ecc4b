"""postdrop error hierarchy.

Every error carries a short human-readable message plus the HTTP status and
machine code the API layer renders it with.
"""


class PostdropError(Exception):
    """Base error for ingestion and storage operations."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.__doc__.strip().splitlines()[0]
        super().__init__(self.message)


class ParseError(PostdropError):
    """Malformed JSON content."""

    code = "parse_error"


class InvalidArchive(PostdropError):
    """The uploaded file is not a valid ZIP archive."""

    code = "invalid_archive"


class PayloadTooLarge(PostdropError):
    """Payload exceeds the maximum accepted size."""

    status_code = 413
    code = "payload_too_large"

    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        super().__init__(f"ZIP file too large. Maximum size is {max_bytes // (1024 * 1024)}MB")


class NoHtmlInArchive(PostdropError):
    """No HTML files found in the ZIP archive."""

    code = "no_html_in_archive"


class NotFound(PostdropError):
    """Content not found."""

    status_code = 404
    code = "not_found"

    def __init__(self, post_id: str) -> None:
        self.post_id = post_id
        super().__init__(f"Content not found: {post_id}")


class NotAnArchive(PostdropError):
    """Content is not a ZIP archive."""

    code = "not_an_archive"
