"""
Paystack gateway client.

Handles:
    1. Transaction initialisation (checkout URL + reference)
    2. Webhook signature verification (HMAC-SHA512 of the raw body)

verify_webhook_signature() fails closed: a missing secret or header never
verifies, and the comparison is constant-time.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional, Protocol

import httpx

from domain.errors import PaymentGatewayUnavailableError

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    async def initialize_transaction(
        self,
        *,
        email: str,
        amount_minor: int,
        callback_url: str,
        metadata: dict,
    ) -> dict:
        ...


class PaystackGateway:
    """Minimal async client for the Paystack Transactions API."""

    def __init__(self, secret_key: str, base_url: str = "https://api.paystack.co", timeout: float = 10.0):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get_headers(self) -> dict:
        if not self.secret_key:
            logger.error("PAYSTACK_SECRET_KEY not configured — cannot initialise payments")
            raise PaymentGatewayUnavailableError()
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    async def initialize_transaction(
        self,
        *,
        email: str,
        amount_minor: int,
        callback_url: str,
        metadata: dict,
    ) -> dict:
        """
        POST /transaction/initialize.

        Returns:
            dict: {authorization_url, access_code, reference}

        Raises:
            PaymentGatewayUnavailableError: network error, timeout, non-2xx,
                or a response with status false. Gateway details are logged,
                never returned.
        """
        headers = self._get_headers()
        payload = {
            "email": email,
            "amount": amount_minor,
            "callback_url": callback_url,
            "metadata": metadata,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/transaction/initialize",
                    headers=headers,
                    json=payload,
                )
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Paystack initialize failed: {e}")
            raise PaymentGatewayUnavailableError() from e

        data = body.get("data") or {}
        if not body.get("status") or not data.get("authorization_url"):
            logger.error(f"Paystack initialize rejected: {body.get('message')}")
            raise PaymentGatewayUnavailableError()

        return {
            "authorization_url": data["authorization_url"],
            "access_code": data.get("access_code"),
            "reference": data.get("reference"),
        }


def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Verify a Paystack webhook signature over the exact raw request body.

    Paystack signs with HMAC-SHA512 keyed by the account's secret key and
    sends the hex digest in X-Paystack-Signature.
    """
    if not secret:
        logger.error(
            "PAYSTACK_SECRET_KEY not configured — rejecting webhook. "
            "Set PAYSTACK_SECRET_KEY in .env to accept Paystack webhooks."
        )
        return False

    if not signature:
        logger.warning("Webhook received without signature header")
        return False

    candidate = signature.strip().lower()
    if not candidate.isascii():
        logger.warning("Webhook signature header is not ASCII")
        return False

    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected, candidate)
