"""
News posts — public listing/reading, admin create (with media) and delete.

Endpoints:
    GET    /api/posts          — all posts, newest first
    GET    /api/posts/{id}     — one post
    POST   /api/posts          — create (admin, multipart, optional `media`)
    DELETE /api/posts/{id}     — delete (admin)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import ServiceContainer, get_services
from domain.responses import success_response
from middleware.auth import require_admin
from services import audit_service, content_service, media_service
from services.identity_service import Identity
from utils.validators import optional_text, require_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("")
async def list_posts(db: AsyncSession = Depends(get_db)):
    return await content_service.list_posts(db)


@router.get("/{post_id}")
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    post = await content_service.get_post(db, post_id)
    return content_service.serialize_post(post)


@router.post("", status_code=201)
async def create_post(
    title: Optional[str] = Form(None),
    excerpt: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    media: Optional[UploadFile] = File(None),
    admin: Identity = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
    db: AsyncSession = Depends(get_db),
):
    """Create a post; an attached image is relayed with its derivatives."""
    title = require_text(title, "title")

    upload = None
    if media is not None and media.filename:
        logger.info(f"Uploading post media: {media.filename}")
        upload = await media_service.relay_upload(
            services.object_store,
            await media_service.read_limited(media, services.settings.max_upload_bytes),
            media.filename,
            media.content_type,
            prefix="posts",
            max_bytes=services.settings.max_upload_bytes,
            variants_enabled=services.settings.image_variants_enabled,
        )

    post = await content_service.create_post(
        db,
        title=title,
        excerpt=optional_text(excerpt),
        content=optional_text(content),
        category=optional_text(category),
        media=upload,
    )
    await audit_service.record_event(db, admin.email, "post.create", f"Post {post.id}: {post.title}")
    return success_response(content_service.serialize_post(post))


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await content_service.delete_post(db, post_id)
    await audit_service.record_event(db, admin.email, "post.delete", f"Post {post_id}")
    return success_response({"id": post_id, "deleted": True})
