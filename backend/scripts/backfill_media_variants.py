"""
Migration: store derivative URLs on legacy image rows.

Older posts and slides were saved with only media_url; their resized
JPEG/WebP siblings exist in storage under names derived from the original
({ts}_{width}_{name}). This fills media_variants on those rows once, so
readers never have to reconstruct URLs from filenames.

Rows whose URL has no timestamp prefix are left untouched.

Run from the backend/ directory:
    python scripts/backfill_media_variants.py
"""
import asyncio
import os
import sys

# Add backend/ to path so we can import config
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import async_session, engine, init_db
from services.media_service import backfill_legacy_variants


async def migrate():
    await init_db()
    async with async_session() as session:
        updated = await backfill_legacy_variants(session)
    await engine.dispose()

    print("✅ Backfill complete!")
    print(f"   - {updated} row(s) now carry stored media_variants")


if __name__ == "__main__":
    asyncio.run(migrate())
