"""
Application service — business-registration cases.

Handles:
    1. Public submission and tracking
    2. Admin status / express-flag changes (completion emails the applicant)
    3. Correlating a verified payment to exactly one application

Correlation rule for payments:
    - an application whose payment_ref equals the gateway reference wins,
      provided exactly one such application exists
    - otherwise fall back to the payer's email, but only when exactly one
      pending, unpaid application carries that email
    - anything else (no candidate, several candidates) leaves state untouched
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Application
from domain.enums import ApplicationStatus
from domain.errors import NotFoundError, ValidationError
from services import mail_service
from services.mail_service import Mailer

logger = logging.getLogger(__name__)

VALID_STATUSES = {s.value for s in ApplicationStatus}


def serialize(app: Application) -> dict:
    return {
        "id": app.id,
        "email": app.email,
        "business_name": app.business_name,
        "service_name": app.service_name,
        "details": app.details or {},
        "status": app.status,
        "is_express": app.is_express,
        "payment_ref": app.payment_ref,
        "created_at": app.created_at.isoformat() if app.created_at else None,
        "updated_at": app.updated_at.isoformat() if app.updated_at else None,
    }


def serialize_public(app: Application) -> dict:
    """Tracking view: no email, no free-form details."""
    return {
        "id": app.id,
        "business_name": app.business_name,
        "service_name": app.service_name,
        "status": app.status,
        "is_express": app.is_express,
        "created_at": app.created_at.isoformat() if app.created_at else None,
        "updated_at": app.updated_at.isoformat() if app.updated_at else None,
    }


async def _get(db: AsyncSession, application_id: int) -> Application:
    result = await db.execute(select(Application).where(Application.id == application_id))
    app = result.scalar_one_or_none()
    if not app:
        raise NotFoundError("Application", str(application_id))
    return app


# ════════════════════════════════════════════════════════════════════
# Public
# ════════════════════════════════════════════════════════════════════


async def create_application(
    db: AsyncSession,
    *,
    email: str,
    business_name: str,
    service_name: Optional[str] = None,
    details: Optional[dict] = None,
) -> Application:
    app = Application(
        email=email.strip().lower(),
        business_name=business_name,
        service_name=service_name,
        details=details or {},
        status=ApplicationStatus.PENDING.value,
        is_express=False,
    )
    db.add(app)
    await db.commit()
    await db.refresh(app)
    logger.info(f"Application {app.id} submitted for {business_name!r}")
    return app


async def track(db: AsyncSession, query: str) -> list[dict]:
    """Find applications by id, payment reference, or applicant email."""
    query = (query or "").strip()
    if not query:
        raise ValidationError("A tracking reference or email is required", field="query")

    conditions = [
        Application.payment_ref == query,
        func.lower(Application.email) == query.lower(),
    ]
    if query.isdigit():
        conditions.append(Application.id == int(query))

    result = await db.execute(
        select(Application).where(or_(*conditions)).order_by(Application.created_at.desc())
    )
    return [serialize_public(a) for a in result.scalars().all()]


# ════════════════════════════════════════════════════════════════════
# Admin
# ════════════════════════════════════════════════════════════════════


async def list_applications(db: AsyncSession, status: Optional[str] = None) -> list[dict]:
    stmt = select(Application).order_by(Application.created_at.desc(), Application.id.desc())
    if status:
        stmt = stmt.where(Application.status == status)
    result = await db.execute(stmt)
    return [serialize(a) for a in result.scalars().all()]


async def update_status(
    db: AsyncSession,
    mailer: Mailer,
    application_id: int,
    status: str,
    *,
    site_name: str,
) -> tuple[Application, bool]:
    """
    Set an application's status.

    Moving into ``completed`` emails the applicant once; re-saving an already
    completed application does not. Email failure is logged, not raised.

    Returns:
        (application, notified)
    """
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"must be one of {sorted(VALID_STATUSES)}", field="status",
        )

    app = await _get(db, application_id)
    previous = app.status
    app.status = status
    await db.commit()
    await db.refresh(app)
    logger.info(f"Application {app.id} status {previous} → {status}")

    notified = False
    if status == ApplicationStatus.COMPLETED.value and previous != status:
        subject, body = mail_service.application_completed(site_name, app.business_name)
        try:
            await mailer.send(app.email, subject, body)
            notified = True
        except Exception as e:
            logger.warning(f"Completion email for application {app.id} failed: {e}")

    return app, notified


async def set_express(db: AsyncSession, application_id: int, is_express: bool) -> Application:
    app = await _get(db, application_id)
    app.is_express = is_express
    await db.commit()
    await db.refresh(app)
    return app


# ════════════════════════════════════════════════════════════════════
# Payment correlation
# ════════════════════════════════════════════════════════════════════


async def correlate_payment(
    db: AsyncSession,
    reference: str,
    email: Optional[str],
) -> Optional[Application]:
    """Return the single application a payment belongs to, or None."""
    by_ref = (await db.execute(
        select(Application).where(Application.payment_ref == reference)
    )).scalars().all()
    if len(by_ref) == 1:
        return by_ref[0]
    if len(by_ref) > 1:
        logger.warning(f"Payment {reference} matches {len(by_ref)} applications by reference — skipping")
        return None

    if not email:
        return None

    by_email = (await db.execute(
        select(Application).where(
            func.lower(Application.email) == email.strip().lower(),
            Application.status == ApplicationStatus.PENDING.value,
            Application.payment_ref.is_(None),
        )
    )).scalars().all()
    if len(by_email) == 1:
        return by_email[0]
    if by_email:
        logger.warning(
            f"Payment {reference} matches {len(by_email)} pending applications by email — skipping"
        )
    return None


def apply_payment(app: Application, reference: str) -> bool:
    """
    Record a verified payment on an application.

    Pending applications move to in_progress; later states keep their status.
    Returns True if the status changed.
    """
    app.payment_ref = reference
    if app.status == ApplicationStatus.PENDING.value:
        app.status = ApplicationStatus.IN_PROGRESS.value
        return True
    return False
