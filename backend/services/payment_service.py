"""
Payment service — checkout initialisation and webhook handling.

Handles:
    1. Amount normalisation ("₦12,500" → 1_250_000 kobo)
    2. Checkout initialisation through the payment gateway
    3. Verified charge.success events: dedupe on reference, confirmation
       email, application status transition

Idempotency: the gateway retries webhooks. The first delivery of a reference
inserts a Transaction row (unique on reference); later deliveries hit the
constraint and are acknowledged without side effects. Because the claim is
persisted, this holds across multiple stateless instances.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Transaction
from domain.constants import EVENT_CHARGE_SUCCESS
from domain.errors import ValidationError
from services import application_service, mail_service
from services.mail_service import Mailer
from services.paystack_service import PaymentGateway

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def to_minor_units(amount: Any) -> int:
    """
    Convert a human-entered naira amount to kobo.

    Every non-digit character is stripped before parsing, so "₦12,500",
    "12500" and 12500 all give 1_250_000.
    """
    digits = _NON_DIGITS.sub("", str(amount if amount is not None else ""))
    if not digits or int(digits) <= 0:
        raise ValidationError("must contain a positive whole amount", field="amount")
    return int(digits) * 100


# ════════════════════════════════════════════════════════════════════
# Checkout
# ════════════════════════════════════════════════════════════════════


async def initialize_payment(
    gateway: PaymentGateway,
    *,
    email: str,
    amount: Any,
    service_name: str,
    callback_url: str,
    metadata: Optional[dict] = None,
) -> dict:
    """
    Start a checkout session.

    Returns:
        dict: {authorization_url, access_code, reference, amount_minor}

    Raises:
        ValidationError: amount has no digits
        PaymentGatewayUnavailableError: gateway call failed
    """
    amount_minor = to_minor_units(amount)
    result = await gateway.initialize_transaction(
        email=email,
        amount_minor=amount_minor,
        callback_url=callback_url,
        metadata={**(metadata or {}), "service_name": service_name},
    )
    logger.info(f"Checkout initialised: {result.get('reference')} ({amount_minor} kobo, {service_name})")
    return {**result, "amount_minor": amount_minor}


# ════════════════════════════════════════════════════════════════════
# Webhook
# ════════════════════════════════════════════════════════════════════


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


async def process_webhook(
    db: AsyncSession,
    mailer: Mailer,
    event: dict,
    *,
    site_name: str,
) -> dict:
    """
    Act on a signature-verified gateway event.

    Only charge.success has side effects. Failures after the reference is
    claimed are logged and reported in the result, never raised, so the
    gateway always gets its 200.
    """
    event_type = event.get("event")
    if event_type != EVENT_CHARGE_SUCCESS:
        logger.info(f"Ignoring webhook event {event_type!r}")
        return {"status": "ignored", "event": event_type}

    data = event.get("data")
    reference = data.get("reference") if isinstance(data, dict) else None
    if not reference:
        logger.warning("charge.success without a reference, ignoring")
        return {"status": "ignored", "event": event_type}

    customer = data.get("customer") if isinstance(data.get("customer"), dict) else {}
    email = customer.get("email")
    metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
    service_name = metadata.get("service_name") or metadata.get("serviceName")
    amount_minor = _as_int(data.get("amount"))

    # ── Claim the reference ─────────────────────────────────────────
    txn = Transaction(
        reference=str(reference),
        event=event_type,
        email=email,
        amount_minor=amount_minor,
        service_name=service_name,
    )
    db.add(txn)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Duplicate webhook for {reference} — already processed")
        return {"status": "duplicate", "reference": reference}

    # ── Side effects (best-effort) ──────────────────────────────────
    emailed = False
    if email:
        subject, body = mail_service.payment_confirmation(site_name, service_name, reference, amount_minor)
        try:
            await mailer.send(email, subject, body)
            emailed = True
        except Exception as e:
            logger.error(f"Payment confirmation email for {reference} failed: {e}")

    application_id = None
    try:
        app = await application_service.correlate_payment(db, reference, email)
        if app is not None:
            application_service.apply_payment(app, reference)
            txn.application_id = app.id
            await db.commit()
            application_id = app.id
            logger.info(f"Payment {reference} applied to application {app.id}")
        else:
            logger.info(f"Payment {reference} not matched to an application")
    except Exception as e:
        logger.error(f"Application update for payment {reference} failed: {e}")
        await db.rollback()

    return {
        "status": "processed",
        "reference": reference,
        "emailed": emailed,
        "application_id": application_id,
    }


async def list_transactions(db: AsyncSession, limit: int, offset: int) -> tuple[list[dict], int]:
    total = (await db.execute(select(func.count(Transaction.id)))).scalar() or 0
    result = await db.execute(
        select(Transaction)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = [
        {
            "id": t.id,
            "reference": t.reference,
            "event": t.event,
            "email": t.email,
            "amount_minor": t.amount_minor,
            "service_name": t.service_name,
            "application_id": t.application_id,
            "created_at": t.created_at.isoformat() if t.created_at else None,
        }
        for t in result.scalars().all()
    ]
    return rows, total
