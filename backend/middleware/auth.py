"""
Admin authentication.

The site has exactly one administrator. Admin routes require
``Authorization: Bearer <token>``; the token is resolved to an identity by
the configured IdentityResolver (Supabase lookup or local JWT verification)
and the identity's email must equal settings.admin_email.

    no token / malformed header             → 401 UnauthenticatedError
    token that does not resolve             → 403 PermissionDeniedError
    token for any other email               → 403 PermissionDeniedError

The resolved identity is attached to request.state.admin for audit
attribution.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, Request

from deps import ServiceContainer, get_services
from domain.errors import PermissionDeniedError, UnauthenticatedError
from services.identity_service import Identity

logger = logging.getLogger(__name__)


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


async def require_admin(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    services: ServiceContainer = Depends(get_services),
) -> Identity:
    """Dependency for admin-only routes; returns the admin identity."""
    token = _parse_bearer_token(authorization)
    if not token:
        raise UnauthenticatedError(
            "Authentication required. Provide Authorization: Bearer <token>."
        )

    identity = await services.identity.resolve(token)
    if identity is None:
        raise PermissionDeniedError("Invalid or expired access token.")

    admin_email = services.settings.admin_email.strip().lower()
    if not admin_email or identity.email.strip().lower() != admin_email:
        logger.warning(f"Admin access denied for {identity.email} on {request.url.path}")
        raise PermissionDeniedError("Administrator access required.")

    request.state.admin = identity
    return identity
