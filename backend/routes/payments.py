"""
Payment endpoints (Paystack).

Endpoints:
    POST /api/payments/initialize   — start checkout, returns authorization URL
    POST /api/payments/webhook      — Paystack callback (signature verified, no admin token)

The webhook answers 200 for every verified delivery, including duplicates
and events whose side effects failed, so the gateway stops retrying. Only a
bad signature (401) or an unparseable body (400) is refused.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import ServiceContainer, get_services
from domain.constants import PAYSTACK_SIGNATURE_HEADER
from domain.errors import SignatureMismatchError, ValidationError
from domain.responses import success_response
from middleware.rate_limit import rate_limit
from models import InitializePaymentRequest
from services import payment_service, paystack_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/initialize", dependencies=[Depends(rate_limit(max_requests=10, window_seconds=60))])
async def initialize_payment(
    body: InitializePaymentRequest,
    services: ServiceContainer = Depends(get_services),
):
    result = await payment_service.initialize_payment(
        services.payment_gateway,
        email=body.email,
        amount=body.amount,
        service_name=body.service_name,
        callback_url=services.settings.payment_callback_url,
        metadata=body.metadata,
    )
    return success_response(result)


@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    db: AsyncSession = Depends(get_db),
):
    body = await request.body()
    signature = request.headers.get(PAYSTACK_SIGNATURE_HEADER, "")

    if not paystack_service.verify_webhook_signature(
        body, signature, services.settings.paystack_secret_key,
    ):
        logger.warning("Rejected webhook with invalid signature")
        raise SignatureMismatchError()

    try:
        event = json.loads(body)
    except ValueError:
        raise ValidationError("Invalid JSON payload")
    if not isinstance(event, dict):
        raise ValidationError("Invalid JSON payload")

    result = await payment_service.process_webhook(
        db, services.mailer, event, site_name=services.settings.site_name,
    )
    return {"received": True, **result}
