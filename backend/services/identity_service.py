"""
Identity service — resolves admin bearer tokens to a user identity.

Two resolvers are available:
    SupabaseIdentityResolver  asks Supabase Auth (GET /auth/v1/user) who the
                              token belongs to
    JwtIdentityResolver       verifies the Supabase-issued HS256 JWT locally
                              with the project's JWT secret (no network hop)

Both return None for anything they cannot vouch for (missing, malformed,
expired, revoked, or a lookup failure). Authorization decisions are made by
middleware/auth.py, not here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
import jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    id: str
    email: str


class IdentityResolver(Protocol):
    async def resolve(self, token: str) -> Optional[Identity]:
        ...


class SupabaseIdentityResolver:
    """Resolve tokens through the Supabase Auth REST API."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    async def resolve(self, token: str) -> Optional[Identity]:
        if not self.base_url or not self.api_key:
            logger.error("Supabase identity lookup not configured — rejecting token")
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/auth/v1/user",
                    headers={
                        "apikey": self.api_key,
                        "Authorization": f"Bearer {token}",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"Identity lookup failed: {e}")
            return None

        if response.status_code != 200:
            logger.info(f"Identity lookup rejected token (HTTP {response.status_code})")
            return None

        try:
            user = response.json()
        except ValueError:
            logger.error("Identity lookup returned a non-JSON body")
            return None
        if not isinstance(user, dict):
            return None

        email = user.get("email")
        if not email:
            return None
        return Identity(id=str(user.get("id", "")), email=email)


class JwtIdentityResolver:
    """Verify Supabase access tokens locally (HS256, audience 'authenticated')."""

    def __init__(self, secret: str, audience: str = "authenticated"):
        self.secret = secret
        self.audience = audience

    async def resolve(self, token: str) -> Optional[Identity]:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=["HS256"],
                audience=self.audience,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired access token")
            return None
        except jwt.InvalidTokenError:
            logger.info("Rejected invalid access token")
            return None

        email = payload.get("email")
        if not email:
            return None
        return Identity(id=str(payload["sub"]), email=email)
