"""
Seed the service catalog with the agency's standard registration packages.

Existing rows are left alone; only an empty catalog is seeded.

Run from the backend/ directory:
    python scripts/seed_services.py
"""
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, select

from database import async_session, engine, init_db
from db_models import Service

DEFAULT_SERVICES = [
    ("Business Name Registration", "₦35,000", "Register a business name with the Corporate Affairs Commission."),
    ("Limited Liability Company", "₦85,000", "Incorporate a private company limited by shares."),
    ("Incorporated Trustees (NGO)", "₦150,000", "Register an association, church, or NGO under Part F."),
    ("Annual Returns Filing", "₦20,000", "File annual returns for an existing business name or company."),
    ("Post-Incorporation Changes", "₦40,000", "Change of directors, shareholding, address, or company name."),
]


async def seed():
    await init_db()
    async with async_session() as session:
        count = (await session.execute(select(func.count(Service.id)))).scalar() or 0
        if count:
            print(f"⚠️  Catalog already has {count} service(s). Nothing to do.")
        else:
            for title, price, description in DEFAULT_SERVICES:
                session.add(Service(title=title, price=price, description=description))
            await session.commit()
            print(f"✅ Seeded {len(DEFAULT_SERVICES)} services")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
