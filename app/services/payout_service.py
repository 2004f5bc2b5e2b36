import logging
import uuid
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.auditing import AuditSpan
from app.core.config import PAYMENT_CURRENCY
from app.domain.exceptions import NotFound, Conflict, UpstreamError
from app.domain.organizers import crud as organizers_crud
from app.domain.payments import crud as payments_crud
from app.domain.payments.models import Payment, Payout, PayoutStatus
from app.integrations.xendit_client import XenditClient

logger = logging.getLogger("app.payouts")


def payout_reference(payment_id: UUID) -> str:
    return f"payout-{payment_id}"


async def _send_payout(db: AsyncSession, payout: Payout, gateway: XenditClient) -> Payout:
    account = await organizers_crud.get_payout_account(db, payout.organizer_id)
    if account is None:
        logger.warning("Organizer has no payout account", extra={"payment_id": str(payout.payment_id)})
        await payments_crud.update_payout(payout, {
            "status": PayoutStatus.SKIPPED,
            "failure_reason": "Organizer has no payout account",
        })
        return payout

    if payout.amount <= 0:
        await payments_crud.update_payout(payout, {
            "status": PayoutStatus.SKIPPED,
            "failure_reason": "Nothing to pay out",
        })
        return payout

    await payments_crud.update_payout(payout, {"channel_code": account.channel_code, "currency": account.currency})
    try:
        body = await gateway.create_payout(
            idempotency_key=str(uuid.uuid4()),
            reference_id=payout.reference,
            channel_code=account.channel_code,
            account_number=account.account_number,
            account_holder_name=account.account_holder_name,
            amount=payout.amount,
            currency=account.currency,
            description=f"Ticket sale {payout.payment_id}",
        )
    except UpstreamError as e:
        logger.warning("Payout failed", extra={"payment_id": str(payout.payment_id), "reason": str(e)})
        await payments_crud.update_payout(payout, {"status": PayoutStatus.FAILED, "failure_reason": str(e)})
        return payout

    # Accepted by the gateway even when the body carries no usable id
    gateway_payout_id = body.get("id") if isinstance(body, dict) else None
    await payments_crud.update_payout(payout, {
        "status": PayoutStatus.ACCEPTED,
        "gateway_payout_id": gateway_payout_id,
        "failure_reason": None,
    })
    return payout


async def dispatch_payout(
        db: AsyncSession,
        payment: Payment,
        *,
        organizer_id: UUID,
        amount: int,
        gateway: XenditClient,
) -> Payout:
    """
    Records and sends the organizer disbursement for an already committed payment.

    The payout row is committed as PENDING before the gateway call so a crash in
    between is visible for reconciliation. Gateway failures end as FAILED and are
    never raised, the sale itself stays final.
    """
    async with AuditSpan(
        scope="PAYOUTS",
        action="DISPATCH",
        object_type="payout",
        payment_id=payment.id,
        meta={"amount": amount},
    ) as span:
        payout = Payout(
            id=uuid.uuid4(),
            payment_id=payment.id,
            reference=payout_reference(payment.id),
            organizer_id=organizer_id,
            amount=amount,
            currency=PAYMENT_CURRENCY,
            status=PayoutStatus.PENDING,
        )
        db.add(payout)
        await db.commit()
        span.object_id = payout.id

        await _send_payout(db, payout, gateway)
        await db.commit()
        span.meta.update({"status": payout.status})
        return payout


async def retry_payout(db: AsyncSession, payment_id: UUID, *, gateway: XenditClient) -> Payout:
    async with AuditSpan(scope="PAYOUTS", action="RETRY", object_type="payout", payment_id=payment_id) as span:
        payment = await payments_crud.get_payment(db, payment_id)
        if not payment:
            raise NotFound("Payment not found", ctx={"payment_id": payment_id})

        payout = await payments_crud.get_payout_for_payment(db, payment_id, for_update=True)
        if not payout:
            raise NotFound("Payout not found", ctx={"payment_id": payment_id})
        span.object_id = payout.id
        span.meta.update({"prev_status": payout.status})

        if payout.status == PayoutStatus.ACCEPTED:
            raise Conflict("Payout already accepted", ctx={"payment_id": payment_id, "reference": payout.reference})

        await _send_payout(db, payout, gateway)
        await db.flush()
        span.meta.update({"status": payout.status})
        return payout
