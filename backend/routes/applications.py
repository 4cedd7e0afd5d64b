"""
Business-registration applications.

Endpoints:
    POST /api/applications                 — public submission
    GET  /api/track?query=                 — public status lookup (id, reference or email)
    GET  /api/applications                 — all applications (admin, optional ?status=)
    PUT  /api/applications/{id}/status     — change status (admin; completion emails applicant)
    PUT  /api/applications/{id}/express    — toggle express handling (admin)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import ServiceContainer, get_services
from domain.enums import ApplicationStatus
from domain.responses import success_response
from middleware.auth import require_admin
from models import ApplicationCreateRequest, ApplicationExpressRequest, ApplicationStatusRequest
from services import application_service, audit_service
from services.identity_service import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["applications"])


@router.post("/applications", status_code=201)
async def create_application(
    body: ApplicationCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    app = await application_service.create_application(
        db,
        email=body.email,
        business_name=body.business_name,
        service_name=body.service_name,
        details=body.details,
    )
    return success_response(application_service.serialize_public(app))


@router.get("/track")
async def track_application(
    query: str = Query("", max_length=320),
    db: AsyncSession = Depends(get_db),
):
    results = await application_service.track(db, query)
    return success_response(results)


@router.get("/applications")
async def list_applications(
    status: Optional[ApplicationStatus] = Query(None),
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    apps = await application_service.list_applications(db, status.value if status else None)
    return success_response(apps, meta={"total": len(apps)})


@router.put("/applications/{application_id}/status")
async def update_status(
    application_id: int,
    body: ApplicationStatusRequest,
    admin: Identity = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
    db: AsyncSession = Depends(get_db),
):
    app, notified = await application_service.update_status(
        db,
        services.mailer,
        application_id,
        body.status.value,
        site_name=services.settings.site_name,
    )
    await audit_service.record_event(
        db, admin.email, "application.status", f"Application {app.id} → {app.status}",
    )
    return success_response(application_service.serialize(app), meta={"notified": notified})


@router.put("/applications/{application_id}/express")
async def update_express(
    application_id: int,
    body: ApplicationExpressRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    app = await application_service.set_express(db, application_id, body.is_express)
    await audit_service.record_event(
        db, admin.email, "application.express",
        f"Application {app.id} express={'on' if app.is_express else 'off'}",
    )
    return success_response(application_service.serialize(app))
