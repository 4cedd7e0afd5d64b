"""
Hero slides and other section assets.

Endpoints:
    GET    /api/slides        — list (optional ?section=)
    POST   /api/slides        — upload a slide (admin, multipart `media`)
    DELETE /api/slides/{id}   — remove (admin)
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import ServiceContainer, get_services
from domain.errors import ValidationError
from domain.responses import success_response
from middleware.auth import require_admin
from services import audit_service, content_service, media_service
from services.identity_service import Identity
from utils.validators import optional_text

router = APIRouter(prefix="/api/slides", tags=["slides"])


@router.get("")
async def list_slides(
    section: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await content_service.list_slides(db, section=section)


@router.post("", status_code=201)
async def create_slide(
    media: Optional[UploadFile] = File(None),
    section: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    caption: Optional[str] = Form(None),
    admin: Identity = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
    db: AsyncSession = Depends(get_db),
):
    if media is None or not media.filename:
        raise ValidationError("No media detected", field="media")

    section = optional_text(section) or "hero"
    upload = await media_service.relay_upload(
        services.object_store,
        await media_service.read_limited(media, services.settings.max_upload_bytes),
        media.filename,
        media.content_type,
        prefix=section,
        max_bytes=services.settings.max_upload_bytes,
        variants_enabled=services.settings.image_variants_enabled,
    )
    slide = await content_service.create_slide(
        db, upload, section=section, title=optional_text(title), caption=optional_text(caption),
    )
    await audit_service.record_event(db, admin.email, "slide.create", f"Slide {slide.id} ({section})")
    return success_response(content_service.serialize_slide(slide))


@router.delete("/{slide_id}")
async def delete_slide(
    slide_id: int,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await content_service.delete_slide(db, slide_id)
    await audit_service.record_event(db, admin.email, "slide.delete", f"Slide {slide_id}")
    return success_response({"id": slide_id, "deleted": True})
