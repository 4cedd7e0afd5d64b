"""
Content service — posts, slides, service catalog and agent profile.

Plain record CRUD over the managed store. Media is relayed by
services.media_service before these functions are called; the resulting
URLs and variant metadata are stored on the row.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import AgentProfile, Post, Service, Slide
from domain.constants import AGENT_PROFILE_ID
from domain.errors import NotFoundError
from services.media_service import MediaUpload

logger = logging.getLogger(__name__)


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


# ── Posts ───────────────────────────────────────────────────────────


def serialize_post(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "excerpt": post.excerpt,
        "content": post.content,
        "category": post.category,
        "media_type": post.media_type,
        "media_url": post.media_url,
        "media_variants": post.media_variants,
        "media_lqip": post.media_lqip,
        "created_at": _iso(post.created_at),
    }


async def list_posts(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Post).order_by(Post.created_at.desc(), Post.id.desc()))
    return [serialize_post(p) for p in result.scalars().all()]


async def get_post(db: AsyncSession, post_id: int) -> Post:
    post = await db.get(Post, post_id)
    if not post:
        raise NotFoundError("Post", str(post_id))
    return post


async def create_post(
    db: AsyncSession,
    *,
    title: str,
    excerpt: Optional[str] = None,
    content: Optional[str] = None,
    category: Optional[str] = None,
    media: Optional[MediaUpload] = None,
) -> Post:
    post = Post(
        title=title,
        excerpt=excerpt,
        content=content,
        category=category or "News",
        media_type=media.media_type if media else None,
        media_url=media.original if media else None,
        media_variants=(media.variants or None) if media else None,
        media_lqip=media.lqip if media else None,
    )
    db.add(post)
    await db.commit()
    await db.refresh(post)
    return post


async def delete_post(db: AsyncSession, post_id: int) -> None:
    post = await get_post(db, post_id)
    await db.delete(post)
    await db.commit()


# ── Slides ──────────────────────────────────────────────────────────


def serialize_slide(slide: Slide) -> dict:
    return {
        "id": slide.id,
        "section": slide.section,
        "title": slide.title,
        "caption": slide.caption,
        "media_type": slide.media_type,
        "media_url": slide.media_url,
        "media_variants": slide.media_variants,
        "media_lqip": slide.media_lqip,
        "created_at": _iso(slide.created_at),
    }


async def list_slides(db: AsyncSession, section: Optional[str] = None) -> list[dict]:
    stmt = select(Slide).order_by(Slide.created_at.desc(), Slide.id.desc())
    if section:
        stmt = stmt.where(Slide.section == section)
    result = await db.execute(stmt)
    return [serialize_slide(s) for s in result.scalars().all()]


async def create_slide(
    db: AsyncSession,
    media: MediaUpload,
    *,
    section: str = "hero",
    title: Optional[str] = None,
    caption: Optional[str] = None,
) -> Slide:
    slide = Slide(
        section=section,
        title=title,
        caption=caption,
        media_type=media.media_type,
        media_url=media.original,
        media_variants=media.variants or None,
        media_lqip=media.lqip,
    )
    db.add(slide)
    await db.commit()
    await db.refresh(slide)
    return slide


async def delete_slide(db: AsyncSession, slide_id: int) -> None:
    slide = await db.get(Slide, slide_id)
    if not slide:
        raise NotFoundError("Slide", str(slide_id))
    await db.delete(slide)
    await db.commit()


# ── Services ────────────────────────────────────────────────────────


def serialize_service(service: Service) -> dict:
    return {
        "id": service.id,
        "title": service.title,
        "price": service.price,
        "description": service.description,
        "updated_at": _iso(service.updated_at),
    }


async def list_services(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Service).order_by(Service.id))
    return [serialize_service(s) for s in result.scalars().all()]


async def update_service(db: AsyncSession, service_id: int, changes: dict) -> Service:
    """Apply only the fields present in ``changes`` (title, price, description)."""
    service = await db.get(Service, service_id)
    if not service:
        raise NotFoundError("Service", str(service_id))
    for field_name in ("title", "price", "description"):
        if field_name in changes:
            setattr(service, field_name, changes[field_name])
    await db.commit()
    await db.refresh(service)
    return service


# ── Agent profile ───────────────────────────────────────────────────


def serialize_agent(profile: Optional[AgentProfile]) -> dict:
    if profile is None:
        return {"id": AGENT_PROFILE_ID, "name": None, "title": None, "bio": None,
                "phone": None, "email": None, "profile_url": None, "updated_at": None}
    return {
        "id": profile.id,
        "name": profile.name,
        "title": profile.title,
        "bio": profile.bio,
        "phone": profile.phone,
        "email": profile.email,
        "profile_url": profile.profile_url,
        "updated_at": _iso(profile.updated_at),
    }


async def get_agent_profile(db: AsyncSession) -> Optional[AgentProfile]:
    return await db.get(AgentProfile, AGENT_PROFILE_ID)


async def upsert_agent_profile(db: AsyncSession, changes: dict) -> AgentProfile:
    profile = await get_agent_profile(db)
    if profile is None:
        profile = AgentProfile(id=AGENT_PROFILE_ID)
        db.add(profile)
    for field_name in ("name", "title", "bio", "phone", "email", "profile_url"):
        if field_name in changes:
            setattr(profile, field_name, changes[field_name])
    await db.commit()
    await db.refresh(profile)
    return profile
