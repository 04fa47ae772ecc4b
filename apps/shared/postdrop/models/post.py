"""Post model: one persisted unit of ingested content."""

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from postdrop.models.content import Content


class Post(BaseModel):
    """An ingested item.

    Stored in the key-value store as JSON under ``post:{id}``; its id is also
    listed in the ``post_ids`` index, newest first.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    content: Content


class Pagination(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        validate_by_name=True,
        serialize_by_alias=True,
    )

    page: int
    page_size: int
    total_posts: int
    total_pages: int
    has_more: bool


class PostPage(BaseModel):
    """One page of posts plus the pagination metadata used to fetch the next."""

    posts: list[Post]
    pagination: Pagination
