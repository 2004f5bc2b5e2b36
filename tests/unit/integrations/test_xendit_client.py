import base64
import json
import httpx
import pytest
from app.integrations.xendit_client import XenditClient
from app.domain.exceptions import UpstreamError


def _client(handler) -> XenditClient:
    return XenditClient(
        "xnd_test_key",
        base_url="https://api.xendit.test/",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def _invoice_kwargs(**overrides) -> dict:
    kwargs = {
        "external_id": "INV-1700000000-token",
        "amount": 27405,
        "payer_email": "buyer@example.com",
        "description": "Concert - VIP x3",
        "items": [{"name": "Concert - VIP", "quantity": 3, "price": 9000}],
        "fees": [{"type": "ADMIN", "value": 405}],
        "customer": {"given_names": "Budi", "email": "buyer@example.com"},
        "currency": "IDR",
        "invoice_duration": 86400,
    }
    kwargs.update(overrides)
    return kwargs


@pytest.mark.asyncio
async def test_create_invoice_posts_with_basic_auth_and_returns_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "inv_1", "invoice_url": "https://checkout.xendit.co/web/inv_1"})

    url = await _client(handler).create_invoice(**_invoice_kwargs(success_redirect_url="https://app.test/done"))

    assert url == "https://checkout.xendit.co/web/inv_1"
    assert seen["path"] == "/v2/invoices"
    assert seen["auth"] == "Basic " + base64.b64encode(b"xnd_test_key:").decode()
    assert seen["body"]["amount"] == 27405
    assert seen["body"]["fees"] == [{"type": "ADMIN", "value": 405}]
    assert seen["body"]["success_redirect_url"] == "https://app.test/done"


@pytest.mark.asyncio
async def test_create_invoice_omits_redirect_when_not_configured():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"invoice_url": "https://checkout.xendit.co/web/inv_1"})

    await _client(handler).create_invoice(**_invoice_kwargs())

    assert "success_redirect_url" not in seen["body"]


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(400, json={"error_code": "API_VALIDATION_ERROR"}),
    httpx.Response(500, text="oops"),
    httpx.Response(200, text="not json"),
    httpx.Response(200, json={"id": "inv_1"}),
])
async def test_create_invoice_bad_responses_raise_upstream_error(response):
    with pytest.raises(UpstreamError):
        await _client(lambda request: response).create_invoice(**_invoice_kwargs())


@pytest.mark.asyncio
async def test_transport_errors_raise_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError) as e:
        await _client(handler).create_invoice(**_invoice_kwargs())

    assert str(e.value) == "Payment gateway unreachable"


@pytest.mark.asyncio
async def test_timeouts_raise_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamError) as e:
        await _client(handler).create_invoice(**_invoice_kwargs())

    assert str(e.value) == "Payment gateway timed out"


@pytest.mark.asyncio
async def test_create_payout_sends_idempotency_key_and_channel_properties():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.headers["idempotency-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "disb_1", "status": "ACCEPTED"})

    body = await _client(handler).create_payout(
        idempotency_key="idem-1",
        reference_id="payout-abc",
        channel_code="ID_BCA",
        account_number="1234567890",
        account_holder_name="Event Org",
        amount=27000,
        currency="IDR",
    )

    assert body == {"id": "disb_1", "status": "ACCEPTED"}
    assert seen["path"] == "/v2/payouts"
    assert seen["key"] == "idem-1"
    assert seen["body"]["reference_id"] == "payout-abc"
    assert seen["body"]["channel_properties"] == {
        "account_number": "1234567890",
        "account_holder_name": "Event Org",
    }
    assert "description" not in seen["body"]
