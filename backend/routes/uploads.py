"""
Unified admin upload (hero banners, agent photo, section assets).

Endpoints:
    POST /api/admin/upload — multipart `media` + `section`
        section == "agent" → stored file becomes the agent profile photo
        any other section  → a slide is created in that section
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import ServiceContainer, get_services
from domain.constants import AGENT_SECTION
from domain.errors import ValidationError
from domain.responses import success_response
from middleware.auth import require_admin
from services import audit_service, content_service, media_service
from services.identity_service import Identity
from utils.validators import optional_text

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/upload")
async def admin_upload(
    media: Optional[UploadFile] = File(None),
    section: Optional[str] = Form(None),
    admin: Identity = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
    db: AsyncSession = Depends(get_db),
):
    if media is None or not media.filename:
        raise ValidationError("No media detected", field="media")

    section = optional_text(section) or "general"
    upload = await media_service.relay_upload(
        services.object_store,
        await media_service.read_limited(media, services.settings.max_upload_bytes),
        media.filename,
        media.content_type,
        prefix=section,
        max_bytes=services.settings.max_upload_bytes,
        variants_enabled=services.settings.image_variants_enabled,
    )

    if section == AGENT_SECTION:
        await content_service.upsert_agent_profile(db, {"profile_url": upload.original})
        detail = "Agent profile photo"
    else:
        slide = await content_service.create_slide(db, upload, section=section)
        detail = f"Slide {slide.id} ({section})"

    await audit_service.record_event(db, admin.email, "media.upload", detail)
    return success_response({**upload.as_dict(), "section": section})
