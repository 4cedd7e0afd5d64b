"""
Tests for payments: amount normalisation, checkout initialisation,
webhook signature verification, replay idempotency and correlation.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from sqlalchemy import func, select

from db_models import Application, Transaction
from domain.errors import PaymentGatewayUnavailableError, ValidationError
from services import payment_service
from services.paystack_service import PaystackGateway, compute_signature, verify_webhook_signature
from conftest import FakeMailer, WEBHOOK_SECRET


def _charge_event(reference="ref_abc_123", email="founder@example.com", amount=1_250_000, **metadata):
    return {
        "event": "charge.success",
        "data": {
            "reference": reference,
            "amount": amount,
            "customer": {"email": email},
            "metadata": {"service_name": "Business Name Registration", **metadata},
        },
    }


def _signed(event: dict, secret: str = WEBHOOK_SECRET) -> tuple[bytes, dict]:
    body = json.dumps(event).encode()
    return body, {
        "x-paystack-signature": compute_signature(body, secret),
        "content-type": "application/json",
    }


async def _count(db, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar()


# ════════════════════════════════════════════════════════════════════
# Amounts
# ════════════════════════════════════════════════════════════════════


class TestToMinorUnits:

    @pytest.mark.unit
    @pytest.mark.parametrize("amount,expected", [
        ("₦12,500", 1_250_000),
        ("12500", 1_250_000),
        (12500, 1_250_000),
        (" N 1,000 ", 100_000),
    ])
    def test_converts_display_amounts(self, amount, expected):
        assert payment_service.to_minor_units(amount) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("amount", ["", "₦", "free", None, "0", 0])
    def test_rejects_amounts_without_value(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            payment_service.to_minor_units(amount)
        assert exc_info.value.status_code == 400


# ════════════════════════════════════════════════════════════════════
# Signatures
# ════════════════════════════════════════════════════════════════════


class TestWebhookSignature:

    @pytest.mark.unit
    def test_valid_signature(self):
        body = b'{"event":"charge.success"}'
        assert verify_webhook_signature(body, compute_signature(body, "secret"), "secret") is True

    @pytest.mark.unit
    def test_signature_is_case_insensitive_hex(self):
        body = b'{"event":"charge.success"}'
        assert verify_webhook_signature(body, compute_signature(body, "secret").upper(), "secret") is True

    @pytest.mark.unit
    def test_tampered_body(self):
        signature = compute_signature(b'{"amount":100}', "secret")
        assert verify_webhook_signature(b'{"amount":999}', signature, "secret") is False

    @pytest.mark.unit
    def test_missing_signature(self):
        assert verify_webhook_signature(b"{}", None, "secret") is False
        assert verify_webhook_signature(b"{}", "", "secret") is False

    @pytest.mark.unit
    def test_missing_secret_fails_closed(self):
        body = b"{}"
        assert verify_webhook_signature(body, compute_signature(body, ""), "") is False

    @pytest.mark.unit
    def test_non_ascii_signature_is_rejected(self):
        # Starlette decodes header bytes as latin-1
        assert verify_webhook_signature(b"{}", "caf\u00e9", "secret") is False


# ════════════════════════════════════════════════════════════════════
# Gateway client
# ════════════════════════════════════════════════════════════════════


class TestPaystackGateway:

    def _response(self, status_code, payload):
        return httpx.Response(
            status_code,
            json=payload,
            request=httpx.Request("POST", "https://api.paystack.co/transaction/initialize"),
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_initialize_success(self):
        gateway = PaystackGateway("sk_test_x")
        response = self._response(200, {
            "status": True,
            "data": {"authorization_url": "https://checkout.paystack.com/x", "access_code": "x", "reference": "r1"},
        })
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response)) as mock_post:
            result = await gateway.initialize_transaction(
                email="a@b.co", amount_minor=500_000, callback_url="https://cb", metadata={"k": "v"},
            )
        assert result == {"authorization_url": "https://checkout.paystack.com/x", "access_code": "x", "reference": "r1"}
        sent = mock_post.call_args.kwargs
        assert sent["json"]["amount"] == 500_000
        assert sent["headers"]["Authorization"] == "Bearer sk_test_x"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_initialize_http_error(self):
        gateway = PaystackGateway("sk_test_x")
        response = self._response(400, {"status": False, "message": "Invalid key"})
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response)):
            with pytest.raises(PaymentGatewayUnavailableError):
                await gateway.initialize_transaction(
                    email="a@b.co", amount_minor=100, callback_url="", metadata={},
                )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_initialize_timeout(self):
        gateway = PaystackGateway("sk_test_x")
        with patch("httpx.AsyncClient.post", new=AsyncMock(side_effect=httpx.ReadTimeout("slow"))):
            with pytest.raises(PaymentGatewayUnavailableError):
                await gateway.initialize_transaction(
                    email="a@b.co", amount_minor=100, callback_url="", metadata={},
                )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_initialize_without_secret(self):
        with pytest.raises(PaymentGatewayUnavailableError):
            await PaystackGateway("").initialize_transaction(
                email="a@b.co", amount_minor=100, callback_url="", metadata={},
            )


# ════════════════════════════════════════════════════════════════════
# Webhook processing
# ════════════════════════════════════════════════════════════════════


class TestProcessWebhook:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_charge_event_ignored(self, db_session, mailer):
        result = await payment_service.process_webhook(
            db_session, mailer, {"event": "transfer.success", "data": {}}, site_name="Rex360",
        )
        assert result["status"] == "ignored"
        assert await _count(db_session, Transaction) == 0
        assert mailer.sent == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [["x"], "ref_abc", None, {"reference": ""}])
    async def test_malformed_charge_data_ignored(self, db_session, mailer, data):
        result = await payment_service.process_webhook(
            db_session, mailer, {"event": "charge.success", "data": data}, site_name="Rex360",
        )
        assert result["status"] == "ignored"
        assert await _count(db_session, Transaction) == 0
        assert mailer.sent == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_dict_customer_still_processes(self, db_session, mailer):
        event = _charge_event(reference="ref_odd")
        event["data"]["customer"] = ["founder@example.com"]
        result = await payment_service.process_webhook(db_session, mailer, event, site_name="Rex360")
        assert result["status"] == "processed"
        assert result["emailed"] is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_charge_success_records_and_emails(self, db_session, mailer):
        result = await payment_service.process_webhook(
            db_session, mailer, _charge_event(), site_name="Rex360",
        )
        assert result["status"] == "processed"
        assert result["emailed"] is True
        assert len(mailer.sent) == 1
        assert mailer.sent[0]["to"] == "founder@example.com"
        assert "ref_abc_123" in mailer.sent[0]["html"]

        txn = (await db_session.execute(select(Transaction))).scalar_one()
        assert txn.amount_minor == 1_250_000
        assert txn.service_name == "Business Name Registration"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_replay_has_no_second_side_effect(self, db_session, mailer, sample_application):
        event = _charge_event()
        first = await payment_service.process_webhook(db_session, mailer, event, site_name="Rex360")
        second = await payment_service.process_webhook(db_session, mailer, event, site_name="Rex360")

        assert first["status"] == "processed"
        assert second["status"] == "duplicate"
        assert len(mailer.sent) == 1
        assert await _count(db_session, Transaction) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_email_failure_still_processes(self, db_session, sample_application):
        result = await payment_service.process_webhook(
            db_session, FakeMailer(fail=True), _charge_event(), site_name="Rex360",
        )
        assert result["status"] == "processed"
        assert result["emailed"] is False
        assert result["application_id"] == sample_application.id


class TestCorrelation:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_single_pending_email_match_moves_to_in_progress(self, db_session, mailer, sample_application):
        result = await payment_service.process_webhook(
            db_session, mailer, _charge_event(reference="ref_1"), site_name="Rex360",
        )
        await db_session.refresh(sample_application)
        assert result["application_id"] == sample_application.id
        assert sample_application.status == "in_progress"
        assert sample_application.payment_ref == "ref_1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_payment_ref_match_wins_over_email(self, db_session, mailer, sample_application):
        tagged = Application(
            email="someone-else@example.com", business_name="Tagged Ltd",
            status="pending", payment_ref="ref_tagged",
        )
        db_session.add(tagged)
        await db_session.commit()

        result = await payment_service.process_webhook(
            db_session, mailer, _charge_event(reference="ref_tagged"), site_name="Rex360",
        )
        await db_session.refresh(tagged)
        await db_session.refresh(sample_application)
        assert result["application_id"] == tagged.id
        assert tagged.status == "in_progress"
        assert sample_application.status == "pending"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ambiguous_email_leaves_everything_untouched(self, db_session, mailer, sample_application):
        db_session.add(Application(email="founder@example.com", business_name="Second Co", status="pending"))
        await db_session.commit()

        result = await payment_service.process_webhook(
            db_session, mailer, _charge_event(reference="ref_2"), site_name="Rex360",
        )
        assert result["status"] == "processed"
        assert result["application_id"] is None
        statuses = (await db_session.execute(select(Application.status))).scalars().all()
        assert statuses == ["pending", "pending"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_pending_application_not_matched_by_email(self, db_session, mailer, sample_application):
        sample_application.status = "completed"
        await db_session.commit()

        result = await payment_service.process_webhook(
            db_session, mailer, _charge_event(reference="ref_3"), site_name="Rex360",
        )
        await db_session.refresh(sample_application)
        assert result["application_id"] is None
        assert sample_application.status == "completed"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reference_match_keeps_later_status(self, db_session, mailer, sample_application):
        sample_application.status = "completed"
        sample_application.payment_ref = "ref_done"
        await db_session.commit()

        result = await payment_service.process_webhook(
            db_session, mailer, _charge_event(reference="ref_done"), site_name="Rex360",
        )
        await db_session.refresh(sample_application)
        assert result["application_id"] == sample_application.id
        assert sample_application.status == "completed"


# ════════════════════════════════════════════════════════════════════
# HTTP surface
# ════════════════════════════════════════════════════════════════════


class TestPaymentRoutes:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_initialize_returns_checkout(self, client, gateway):
        response = await client.post("/api/payments/initialize", json={
            "email": "Founder@Example.com",
            "amount": "₦12,500",
            "serviceName": "Business Name Registration",
        })
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["authorization_url"].startswith("https://checkout.paystack.com/")
        assert data["amount_minor"] == 1_250_000

        call = gateway.calls[0]
        assert call["email"] == "founder@example.com"
        assert call["amount_minor"] == 1_250_000
        assert call["metadata"]["service_name"] == "Business Name Registration"
        assert call["callback_url"] == "https://rex360.test/payment-success"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_initialize_rejects_bad_amount(self, client, gateway):
        response = await client.post("/api/payments/initialize", json={
            "email": "founder@example.com", "amount": "free", "serviceName": "LLC",
        })
        assert response.status_code == 400
        assert gateway.calls == []

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_initialize_rejects_bad_email(self, client):
        response = await client.post("/api/payments/initialize", json={
            "email": "not-an-email", "amount": "5000", "serviceName": "LLC",
        })
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_gateway_failure_is_generic_500(self, client, gateway):
        gateway.fail = True
        response = await client.post("/api/payments/initialize", json={
            "email": "founder@example.com", "amount": "5000", "serviceName": "LLC",
        })
        assert response.status_code == 500
        assert response.json()["success"] is False

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_webhook_bad_signature_is_401_without_side_effects(self, client, db_session, mailer, sample_application):
        body, headers = _signed(_charge_event(), secret="wrong-secret")
        response = await client.post("/api/payments/webhook", content=body, headers=headers)

        assert response.status_code == 401
        assert mailer.sent == []
        assert await _count(db_session, Transaction) == 0
        await db_session.refresh(sample_application)
        assert sample_application.status == "pending"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_webhook_non_ascii_signature_is_401(self, client, mailer):
        body, _ = _signed(_charge_event())
        response = await client.post(
            "/api/payments/webhook",
            content=body,
            headers={"x-paystack-signature": "caf\u00e9".encode("latin-1")},
        )
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "signaturemismatch"
        assert mailer.sent == []

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_webhook_list_data_is_acknowledged(self, client, db_session):
        body, headers = _signed({"event": "charge.success", "data": ["x"]})
        response = await client.post("/api/payments/webhook", content=body, headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "ignored"
        assert await _count(db_session, Transaction) == 0

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_webhook_missing_signature_is_401(self, client):
        response = await client.post("/api/payments/webhook", content=b"{}")
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_webhook_invalid_json_is_400(self, client):
        body = b"not json"
        response = await client.post(
            "/api/payments/webhook",
            content=body,
            headers={"x-paystack-signature": compute_signature(body, WEBHOOK_SECRET)},
        )
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_webhook_replay_returns_200_both_times(self, client, mailer, sample_application):
        body, headers = _signed(_charge_event(reference="ref_http"))

        first = await client.post("/api/payments/webhook", content=body, headers=headers)
        second = await client.post("/api/payments/webhook", content=body, headers=headers)

        assert first.status_code == 200
        assert first.json()["status"] == "processed"
        assert first.json()["application_id"] == sample_application.id
        assert second.status_code == 200
        assert second.json()["status"] == "duplicate"
        assert len(mailer.sent) == 1

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_processed_payment_is_listed_for_admin(self, client, admin_headers):
        body, headers = _signed(_charge_event(reference="ref_listed"))
        await client.post("/api/payments/webhook", content=body, headers=headers)

        response = await client.get("/api/transactions", headers=admin_headers)
        assert response.status_code == 200
        payload = response.json()
        assert payload["meta"]["total"] == 1
        assert payload["data"][0]["reference"] == "ref_listed"
