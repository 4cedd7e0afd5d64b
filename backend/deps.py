"""
Shared FastAPI dependencies.

External-service clients are built once at startup into a ServiceContainer
(stored on app.state) instead of living as module globals; handlers receive
it through get_services, which tests override with fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict

from fastapi import Query, Request

from config import Settings
from services.identity_service import IdentityResolver, JwtIdentityResolver, SupabaseIdentityResolver
from services.mail_service import Mailer, ResendMailer
from services.paystack_service import PaymentGateway, PaystackGateway
from services.storage_service import ObjectStore, SupabaseObjectStore


@dataclass
class ServiceContainer:
    settings: Settings
    identity: IdentityResolver
    object_store: ObjectStore
    payment_gateway: PaymentGateway
    mailer: Mailer


def build_services(settings: Settings) -> ServiceContainer:
    """Construct the concrete external-service clients from settings."""
    timeout = settings.http_timeout_seconds
    if settings.supabase_jwt_secret:
        identity: IdentityResolver = JwtIdentityResolver(settings.supabase_jwt_secret)
    else:
        identity = SupabaseIdentityResolver(
            settings.supabase_url, settings.supabase_service_key, timeout=timeout,
        )

    return ServiceContainer(
        settings=settings,
        identity=identity,
        object_store=SupabaseObjectStore(
            settings.supabase_url,
            settings.supabase_service_key,
            settings.storage_bucket,
            # uploads carry whole files; allow more than the API default
            timeout=max(timeout, 60.0),
        ),
        payment_gateway=PaystackGateway(
            settings.paystack_secret_key, settings.paystack_base_url, timeout=timeout,
        ),
        mailer=ResendMailer(settings.resend_api_key, settings.mail_from),
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=100_000),
) -> Pagination:
    return {"limit": limit, "offset": offset}
