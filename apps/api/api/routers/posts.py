"""Ingestion and listing endpoints."""

import logging

from fastapi import APIRouter, Depends, Query, Request
from starlette.datastructures import UploadFile

from api.deps import get_app_settings, get_store
from postdrop.config.settings import Settings
from postdrop.ingest.classifier import (
    FormField,
    UploadedFile,
    classify,
    classify_form,
    classify_zip_upload,
)
from postdrop.models.content import ZipArchiveContent, content_kind
from postdrop.models.post import Post
from postdrop.storage.post_store import PostStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["posts"])


@router.post("/post")
async def create_post(
    request: Request,
    store: PostStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """Ingest any content: JSON, HTML, text, ZIP, binary or a multipart upload."""
    content_type = request.headers.get("content-type", "")
    logger.info("Ingesting request (content-type=%r)", content_type)

    if "multipart/form-data" in content_type.lower():
        fields = await _read_form(request)
        content = classify_form(fields, max_zip_bytes=settings.max_zip_bytes)
    else:
        body = await request.body()
        content = classify(content_type, body, max_zip_bytes=settings.max_zip_bytes)

    post = await store.add(Post(content=content))
    return _stored_response(post, "Content received and stored")


@router.post("/zip-upload")
async def upload_zip(
    request: Request,
    store: PostStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """Upload a ZIP archive as the ``zipFile`` field of a multipart form."""
    fields = await _read_form(request)
    content = classify_zip_upload(fields, max_zip_bytes=settings.max_zip_bytes)
    post = await store.add(Post(content=content))
    return _stored_response(post, "ZIP file processed and stored")


@router.get("/posts")
async def list_posts(
    page: int = 1,
    page_size: int | None = Query(default=None, alias="pageSize"),
    store: PostStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """List posts, newest first, one page at a time."""
    result = await store.get_page(page, page_size or settings.default_page_size)
    return result.model_dump(mode="json", by_alias=True)


@router.get("/item-count")
async def item_count(store: PostStore = Depends(get_store)) -> dict:
    """Number of stored posts."""
    return {"count": await store.count()}


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

async def _read_form(request: Request) -> list[FormField]:
    """Read a multipart form into plain fields, loading uploads into memory."""
    form = await request.form()
    fields: list[FormField] = []
    for name, value in form.multi_items():
        if isinstance(value, UploadFile):
            fields.append((
                name,
                UploadedFile(
                    filename=value.filename or "",
                    content_type=value.content_type or "",
                    data=await value.read(),
                ),
            ))
        else:
            fields.append((name, value))
    await form.close()
    return fields


def _stored_response(post: Post, message: str) -> dict:
    response = {
        "success": True,
        "message": message,
        "postId": post.id,
        "contentType": content_kind(post.content),
    }
    if isinstance(post.content, ZipArchiveContent):
        response.update(
            fileCount=len(post.content.files),
            htmlFiles=post.content.metadata.html_files,
            mainFile=post.content.main_file,
        )
    return response
