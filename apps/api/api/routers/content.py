"""Single-post endpoints: lookup, delete, archive files and ZIP download."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from api.deps import get_store
from postdrop.services.archive_service import build_download, render_archive_file, require_archive
from postdrop.storage.post_store import PostStore

router = APIRouter(tags=["content"])


@router.get("/content/{post_id}")
async def get_content(post_id: str, store: PostStore = Depends(get_store)) -> dict:
    """Get a post by ID."""
    post = await store.get_by_id(post_id)
    return post.model_dump(mode="json", by_alias=True)


@router.delete("/content/{post_id}")
async def delete_content(post_id: str, store: PostStore = Depends(get_store)) -> dict:
    """Delete a post."""
    await store.delete_by_id(post_id)
    return {"success": True, "message": "Content deleted successfully"}


@router.get("/content/{post_id}/files/{file_path:path}")
async def get_archive_file(
    post_id: str,
    file_path: str,
    sanitize: bool = False,
    store: PostStore = Depends(get_store),
) -> Response:
    """Serve one file from an archive post; HTML gets its assets inlined."""
    archive = require_archive(await store.get_by_id(post_id))
    body, media_type = render_archive_file(archive, file_path, sanitize=sanitize)
    return Response(content=body, media_type=media_type)


@router.get("/download/{post_id}")
async def download_archive(post_id: str, store: PostStore = Depends(get_store)) -> Response:
    """Download an archive post as a rebuilt ZIP file."""
    filename, data = build_download(await store.get_by_id(post_id))
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
