"""
Agent profile (single public record).

Endpoints:
    GET /api/agent-profile   — public
    PUT /api/agent-profile   — update (admin)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from domain.errors import ValidationError
from domain.responses import success_response
from middleware.auth import require_admin
from models import AgentProfileUpdateRequest
from services import audit_service, content_service
from services.identity_service import Identity

router = APIRouter(prefix="/api/agent-profile", tags=["agent"])


@router.get("")
async def get_agent_profile(db: AsyncSession = Depends(get_db)):
    profile = await content_service.get_agent_profile(db)
    return content_service.serialize_agent(profile)


@router.put("")
async def update_agent_profile(
    body: AgentProfileUpdateRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No profile fields supplied")

    profile = await content_service.upsert_agent_profile(db, changes)
    await audit_service.record_event(
        db, admin.email, "agent.update", f"Fields: {', '.join(sorted(changes))}",
    )
    return success_response(content_service.serialize_agent(profile))
