"""
Registration service catalog.

Endpoints:
    GET /api/services        — all services ordered by id
    PUT /api/services/{id}   — edit title / price / description (admin)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from domain.errors import ValidationError
from domain.responses import success_response
from middleware.auth import require_admin
from models import ServiceUpdateRequest
from services import audit_service, content_service
from services.identity_service import Identity

router = APIRouter(prefix="/api/services", tags=["services"])


@router.get("")
async def list_services(db: AsyncSession = Depends(get_db)):
    return await content_service.list_services(db)


@router.put("/{service_id}")
async def update_service(
    service_id: int,
    body: ServiceUpdateRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("Provide at least one of title, price, description")

    service = await content_service.update_service(db, service_id, changes)
    await audit_service.record_event(
        db, admin.email, "service.update", f"Service {service_id}: {', '.join(sorted(changes))}",
    )
    return success_response(content_service.serialize_service(service))
