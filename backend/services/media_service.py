"""
Media relay — moves an uploaded file into object storage.

Handles:
    1. Filename sanitisation and collision-resistant, timestamped keys
    2. Upload of the original with its own content type
    3. For images: a 320/640/1280 derivative ladder in JPEG + WebP and an
       inline LQIP, written under names that encode timestamp and width
    4. One-time backfill of variant metadata for legacy rows that predate
       stored derivatives

The original upload decides success. Derivatives are best-effort: a failed
resize or upload leaves that slot as None and is only logged.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.constants import JPEG_QUALITY, VARIANT_WIDTHS, WEBP_QUALITY
from domain.enums import MediaType
from domain.errors import PayloadTooLargeError, ValidationError
from services import image_service
from services.async_executor import run_blocking
from services.storage_service import ObjectStore

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.]")
_EXTENSION = re.compile(r"\.[^.]+$")

# (extension, content type, quality) for each derivative encoding
_ENCODINGS = (
    ("jpg", "image/jpeg", JPEG_QUALITY),
    ("webp", "image/webp", WEBP_QUALITY),
)


@dataclass
class MediaUpload:
    key: str
    original: str
    content_type: str
    media_type: str
    variants: dict = field(default_factory=dict)
    lqip: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "url": self.original,
            "original": self.original,
            "media_type": self.media_type,
            "variants": self.variants,
            "lqip": self.lqip,
        }


# ════════════════════════════════════════════════════════════════════
# Naming
# ════════════════════════════════════════════════════════════════════


def sanitize_filename(filename: str | None) -> str:
    """'My Photo (1).jpg' → 'My_Photo__1_.jpg'."""
    cleaned = _UNSAFE_CHARS.sub("_", filename or "")
    return cleaned or "upload"


def _timestamp() -> str:
    # Microseconds since epoch; wide enough that parallel uploads don't collide
    return str(time.time_ns() // 1000)


def _with_prefix(prefix: str | None, name: str) -> str:
    if not prefix:
        return name
    return f"{sanitize_filename(prefix)}/{name}"


def build_storage_key(filename: str | None, prefix: str | None = None, ts: str | None = None) -> str:
    return _with_prefix(prefix, f"{ts or _timestamp()}_{sanitize_filename(filename)}")


def variant_key(ts: str, width: int, clean_name: str, ext: str, prefix: str | None = None) -> str:
    base = _EXTENSION.sub("", clean_name)
    return _with_prefix(prefix, f"{ts}_{width}_{base}.{ext}")


def media_type_for(content_type: str | None) -> str:
    if content_type and content_type.startswith("video/"):
        return MediaType.VIDEO.value
    if image_service.is_image(content_type):
        return MediaType.IMAGE.value
    return MediaType.FILE.value


# ════════════════════════════════════════════════════════════════════
# Upload
# ════════════════════════════════════════════════════════════════════


async def read_limited(upload, max_bytes: int | None) -> bytes:
    """
    Read an UploadFile, stopping one byte past ``max_bytes``.

    The extra byte lets relay_upload detect the overflow without the whole
    file ever being held in memory.
    """
    if max_bytes is None:
        return await upload.read()
    return await upload.read(max_bytes + 1)


async def relay_upload(
    store: ObjectStore,
    data: bytes,
    filename: str | None,
    content_type: str | None,
    *,
    prefix: str | None = None,
    max_bytes: int | None = None,
    variants_enabled: bool = True,
) -> MediaUpload:
    """
    Store an uploaded file and, for images, its derivatives.

    Args:
        store: Object storage backend
        data: Raw file bytes
        filename: Client-supplied filename (sanitised before use)
        content_type: Client-supplied MIME type
        prefix: Optional logical category used as a key prefix
        max_bytes: Upload ceiling; larger files are rejected
        variants_enabled: Generate the derivative ladder for images

    Raises:
        ValidationError: empty file
        PayloadTooLargeError: file above max_bytes
        UpstreamServiceError: the original could not be stored
    """
    if not data:
        raise ValidationError("Uploaded file is empty", field="media")
    if max_bytes is not None and len(data) > max_bytes:
        raise PayloadTooLargeError(max_bytes // (1024 * 1024))

    content_type = content_type or "application/octet-stream"
    clean_name = sanitize_filename(filename)
    ts = _timestamp()
    key = build_storage_key(clean_name, prefix=prefix, ts=ts)

    await store.upload(key, data, content_type)

    upload = MediaUpload(
        key=key,
        original=store.public_url(key),
        content_type=content_type,
        media_type=media_type_for(content_type),
    )

    if variants_enabled and upload.media_type == MediaType.IMAGE.value:
        upload.variants, upload.lqip = await _build_derivatives(
            store, data, ts, clean_name, prefix,
        )

    logger.info(
        f"Media relayed: {key} ({upload.media_type}, "
        f"{sum(1 for v in upload.variants.values() for u in v.values() if u)} derivatives)"
    )
    return upload


async def _render_and_store(
    store: ObjectStore,
    data: bytes,
    key: str,
    width: int,
    ext: str,
    content_type: str,
    quality: int,
) -> Optional[str]:
    try:
        rendered = await run_blocking(image_service.render_variant, data, width, ext, quality)
        await store.upload(key, rendered, content_type)
        return store.public_url(key)
    except Exception as e:
        logger.warning(f"Variant generation failed for {key} (width {width}): {e}")
        return None


async def _build_derivatives(
    store: ObjectStore,
    data: bytes,
    ts: str,
    clean_name: str,
    prefix: str | None,
) -> tuple[dict, Optional[str]]:
    jobs = []
    slots = []
    for width in VARIANT_WIDTHS:
        for ext, content_type, quality in _ENCODINGS:
            key = variant_key(ts, width, clean_name, ext, prefix=prefix)
            jobs.append(_render_and_store(store, data, key, width, ext, content_type, quality))
            slots.append((width, ext))

    urls = await asyncio.gather(*jobs)

    variants: dict = {str(width): {} for width in VARIANT_WIDTHS}
    for (width, ext), url in zip(slots, urls):
        variants[str(width)][ext] = url

    lqip = None
    try:
        lqip = await run_blocking(image_service.render_lqip, data)
    except Exception as e:
        logger.warning(f"LQIP generation failed for {clean_name}: {e}")

    return variants, lqip


# ════════════════════════════════════════════════════════════════════
# Legacy backfill
# ════════════════════════════════════════════════════════════════════


def derive_legacy_variants(url: str | None) -> Optional[dict]:
    """
    Rebuild derivative URLs from an original URL named ``{ts}_{name}``.

    Only for rows written before variant metadata was stored. Returns None
    when the filename carries no timestamp prefix.
    """
    if not url:
        return None
    head, _, filename = url.rpartition("/")
    ts, sep, rest = filename.partition("_")
    if not sep or not ts.isdigit() or not rest:
        return None

    base = _EXTENSION.sub("", rest)
    variants = {}
    for width in VARIANT_WIDTHS:
        stem = f"{ts}_{width}_{base}"
        variants[str(width)] = {
            "jpg": f"{head}/{stem}.jpg",
            "webp": f"{head}/{stem}.webp",
        }
    return variants


async def backfill_legacy_variants(db: AsyncSession) -> int:
    """
    Persist derived variant metadata on image rows that have none.

    Run once after deploying stored variants; returns the number of rows updated.
    """
    from db_models import Post, Slide

    updated = 0
    for model in (Post, Slide):
        result = await db.execute(
            select(model).where(
                model.media_type == MediaType.IMAGE.value,
                model.media_variants.is_(None),
                model.media_url.is_not(None),
            )
        )
        for row in result.scalars().all():
            variants = derive_legacy_variants(row.media_url)
            if variants is None:
                continue
            row.media_variants = variants
            updated += 1

    await db.commit()
    logger.info(f"Backfilled media variants on {updated} rows")
    return updated
