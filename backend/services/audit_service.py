"""
Audit log — best-effort record of privileged admin actions.

record_event() must be called after the mutation it describes has been
committed. It writes and commits its own row; on any failure the audit write
is rolled back and a warning is logged, leaving the mutation untouched.
"""
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import AuditLog

logger = logging.getLogger(__name__)


async def record_event(
    db: AsyncSession,
    actor: str,
    action: str,
    detail: Optional[str] = None,
) -> bool:
    """Append one audit row. Returns False (never raises) if the write failed."""
    try:
        db.add(AuditLog(actor=actor, action=action, detail=detail))
        await db.commit()
        return True
    except Exception as e:
        logger.warning(f"Audit log write failed ({action} by {actor}): {e}")
        try:
            await db.rollback()
        except Exception as rollback_error:
            logger.warning(f"Audit log rollback failed: {rollback_error}")
        return False


async def list_events(db: AsyncSession, limit: int, offset: int) -> tuple[list[dict], int]:
    total = (await db.execute(select(func.count(AuditLog.id)))).scalar() or 0
    result = await db.execute(
        select(AuditLog)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .offset(offset)
    )
    events = [
        {
            "id": e.id,
            "actor": e.actor,
            "action": e.action,
            "detail": e.detail,
            "created_at": e.created_at.isoformat() if e.created_at else None,
        }
        for e in result.scalars().all()
    ]
    return events, total
