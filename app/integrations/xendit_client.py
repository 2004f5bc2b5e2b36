import logging
from typing import Any
import httpx
from app.core.config import XENDIT_SECRET_KEY, XENDIT_BASE_URL, XENDIT_TIMEOUT_SECONDS
from app.domain.exceptions import UpstreamError

logger = logging.getLogger("app.integrations.xendit")

INVOICES_PATH = "/v2/invoices"
PAYOUTS_PATH = "/v2/payouts"


class XenditClient:
    def __init__(
            self,
            secret_key: str | None = None,
            *,
            base_url: str | None = None,
            timeout: float | None = None,
            transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.secret_key = secret_key or XENDIT_SECRET_KEY or ""
        self.base_url = (base_url or XENDIT_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else XENDIT_TIMEOUT_SECONDS
        self._transport = transport

    async def _post(self, path: str, payload: dict[str, Any], *, headers: dict[str, str] | None = None) -> dict:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                auth=(self.secret_key, ""),
                transport=self._transport,
            ) as client:
                r = await client.post(path, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Xendit request timed out", extra={"path": path})
            raise UpstreamError("Payment gateway timed out", ctx={"path": path}) from e
        except httpx.HTTPError as e:
            logger.warning("Xendit request failed", extra={"path": path, "error": str(e)})
            raise UpstreamError("Payment gateway unreachable", ctx={"path": path}) from e

        if r.status_code not in (200, 201):
            logger.warning(
                "Xendit returned an error",
                extra={"path": path, "status_code": r.status_code, "body": r.text[:500]}
            )
            raise UpstreamError(
                "Payment gateway rejected the request",
                ctx={"path": path, "status_code": r.status_code}
            )

        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError("Payment gateway returned invalid JSON", ctx={"path": path}) from e

    async def create_invoice(
            self,
            *,
            external_id: str,
            amount: int,
            payer_email: str,
            description: str,
            items: list[dict[str, Any]],
            fees: list[dict[str, Any]],
            customer: dict[str, Any],
            currency: str,
            invoice_duration: int,
            success_redirect_url: str | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "external_id": external_id,
            "amount": amount,
            "payer_email": payer_email,
            "description": description,
            "invoice_duration": invoice_duration,
            "currency": currency,
            "customer": customer,
            "items": items,
            "fees": fees,
        }
        if success_redirect_url:
            payload["success_redirect_url"] = success_redirect_url

        body = await self._post(INVOICES_PATH, payload)
        invoice_url = body.get("invoice_url") if isinstance(body, dict) else None
        if not invoice_url:
            raise UpstreamError("Payment gateway response has no invoice URL", ctx={"external_id": external_id})
        return invoice_url

    async def create_payout(
            self,
            *,
            idempotency_key: str,
            reference_id: str,
            channel_code: str,
            account_number: str,
            account_holder_name: str,
            amount: int,
            currency: str,
            description: str | None = None,
    ) -> dict:
        payload: dict[str, Any] = {
            "reference_id": reference_id,
            "channel_code": channel_code,
            "channel_properties": {
                "account_number": account_number,
                "account_holder_name": account_holder_name,
            },
            "amount": amount,
            "currency": currency,
        }
        if description:
            payload["description"] = description

        return await self._post(PAYOUTS_PATH, payload, headers={"Idempotency-key": idempotency_key})
