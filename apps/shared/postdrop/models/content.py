"""Content models for ingested payloads.

Each kind of ingested content is its own model. ``Content`` is the union of
all of them, tried left to right. The tagged variants require their ``type``
tag and forbid unknown keys, so an arbitrary JSON document, with or without a
``type`` key, lands in ``JsonContent`` untouched.

JSON field names are camelCase (``mainFile``, ``fileContents``,
``textContent`` ...) because viewers and downloaders key on them.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        validate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
        extra="forbid",
    )


class Link(_CamelModel):
    href: str
    text: str


class Heading(_CamelModel):
    level: int = Field(ge=1, le=6)
    text: str


class Image(_CamelModel):
    src: str
    alt: str


class HtmlMetadata(_CamelModel):
    """Structured summary of an HTML document."""

    title: str
    description: str
    links: list[Link] = Field(default_factory=list)
    headings: list[Heading] = Field(default_factory=list)
    images: list[Image] = Field(default_factory=list)
    has_scripts: bool = False
    has_styles: bool = False
    has_iframes: bool = False
    complexity: Literal["simple", "complex"] = "simple"


class TextContent(_CamelModel):
    type: Literal["text"]
    content: str


class HtmlContent(_CamelModel):
    """Successfully parsed HTML: metadata, original markup and plain text."""

    type: Literal["html"]
    metadata: HtmlMetadata
    html: str
    text_content: str


class HtmlErrorContent(_CamelModel):
    """HTML the parser could not handle. The markup is kept as-is."""

    type: Literal["html"]
    error: str
    html: str


class FileEntry(_CamelModel):
    path: str
    type: str
    size: int


class FileContent(_CamelModel):
    type: str
    content: str  # base64 of the raw bytes


class ArchiveMetadata(_CamelModel):
    filename: str
    size: int
    file_count: int
    html_files: list[str] = Field(default_factory=list)
    js_files: list[str] = Field(default_factory=list)
    css_files: list[str] = Field(default_factory=list)


class ZipArchiveContent(_CamelModel):
    """A ZIP upload with every entry inlined as base64.

    ``file_contents`` is keyed by the entry's original path inside the
    archive, the same path listed in ``files``.
    """

    type: Literal["zip-archive"]
    main_file: str
    files: list[FileEntry]
    file_contents: dict[str, FileContent]
    html: Annotated[Union[HtmlContent, HtmlErrorContent], Field(union_mode="left_to_right")]
    metadata: ArchiveMetadata


class JsonContent(RootModel[Any]):
    """Any JSON value posted as-is."""


Content = Annotated[
    Union[ZipArchiveContent, HtmlContent, HtmlErrorContent, TextContent, JsonContent],
    Field(union_mode="left_to_right"),
]


def content_kind(content: Any) -> str:
    """Short label for a piece of content: its ``type`` tag, or ``json``."""
    if isinstance(content, JsonContent):
        return "json"
    return getattr(content, "type", "json")
