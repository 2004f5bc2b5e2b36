import logging
import uuid
from uuid import UUID
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.auditing import AuditSpan
from app.core.external_id import ExternalIdCodec
from app.domain.coupons import crud as coupons_crud
from app.domain.exceptions import AppError, DecodeError, NotFound
from app.domain.payments import crud as payments_crud
from app.domain.payments.models import Payment
from app.domain.payments.schemas import XenditInvoiceCallbackDTO, CallbackAckDTO, CallbackOutcome
from app.domain.purchases import crud as purchases_crud
from app.domain.users import crud as users_crud
from app.integrations.xendit_client import XenditClient
from app.services.ledger_service import require_ticket
from app.services.payout_service import dispatch_payout

logger = logging.getLogger("app.payments.callback")


def _ack(outcome: CallbackOutcome, message: str, **kwargs) -> CallbackAckDTO:
    return CallbackAckDTO(outcome=outcome, message=message, **kwargs)


def _purchase_rows(payload: XenditInvoiceCallbackDTO, payment_id: UUID, ticket_id: UUID, user_id: UUID) -> list[dict]:
    rows = []
    for item in payload.items:
        item_total = item.price * item.quantity
        for _ in range(item.quantity):
            rows.append({
                "id": uuid.uuid4(),
                "ticket_id": ticket_id,
                "user_id": user_id,
                "payment_id": payment_id,
                "total": item_total // item.quantity,
                "is_used": False,
            })
    return rows


async def _consume_coupon(db: AsyncSession, user_id: UUID, coupon_id: UUID) -> None:
    claim = await coupons_crud.get_user_coupon(db, user_id, coupon_id, for_update=True)
    if claim is None:
        # Money is already captured, so the sale goes through without the claim flip
        logger.warning("Paid with an unclaimed coupon", extra={"coupon_id": str(coupon_id), "user_id": str(user_id)})
        return
    if claim.is_used:
        logger.warning("Coupon claim already used", extra={"coupon_id": str(coupon_id), "user_id": str(user_id)})
    claim.is_used = True


async def _fulfill(
        db: AsyncSession,
        payload: XenditInvoiceCallbackDTO,
        *,
        user_id: UUID,
        ticket_id: UUID,
        coupon_id: UUID | None,
) -> tuple[Payment, int]:
    payment = await payments_crud.create_payment(db, {
        "id": uuid.uuid4(),
        "amount": payload.amount,
        "method": payload.method,
        "status": payload.status,
        "transaction_id": payload.external_id,
        "gateway_invoice_id": payload.id,
        "user_id": user_id,
        "coupon_id": coupon_id,
    })
    await db.flush()

    purchases = await purchases_crud.create_purchases(
        db, _purchase_rows(payload, payment.id, ticket_id, user_id)
    )
    await db.flush()

    if coupon_id is not None:
        await _consume_coupon(db, user_id, coupon_id)
        await db.flush()

    return payment, len(purchases)


async def _find_duplicate(db: AsyncSession, external_id: str) -> Payment | None:
    return await payments_crud.get_payment_by_transaction_id(db, external_id)


async def _lookup_failed(db: AsyncSession, payload: XenditInvoiceCallbackDTO, span) -> CallbackAckDTO:
    await db.rollback()
    logger.exception("Callback lookup failed", extra={"invoice_id": payload.id})
    span.meta.update({"outcome": CallbackOutcome.FAILED, "reason": "lookup_error"})
    return _ack(CallbackOutcome.FAILED, "Failed to process payment")


async def process_payment_callback(
        db: AsyncSession,
        payload: XenditInvoiceCallbackDTO,
        *,
        codec: ExternalIdCodec,
        gateway: XenditClient,
) -> CallbackAckDTO:
    """
    Turns a gateway invoice callback into one Payment and one Purchase per unit.

    Never raises for processing problems: the gateway only needs a 2xx, the
    outcome goes into the acknowledgment body. Replays of the same external id
    are answered with DUPLICATE and do not write anything.
    """
    async with AuditSpan(
        scope="PAYMENTS",
        action="CALLBACK",
        object_type="invoice",
        object_id=payload.id,
        meta={"status": payload.status, "amount": payload.amount},
    ) as span:
        if not payload.is_paid:
            span.meta.update({"outcome": CallbackOutcome.REJECTED})
            return _ack(CallbackOutcome.REJECTED, f"Ignored invoice status {payload.status}")

        try:
            user = await users_crud.get_active_user_by_email(db, payload.payer_email)
        except SQLAlchemyError:
            return await _lookup_failed(db, payload, span)
        if not user:
            logger.warning("Callback payer not found", extra={"invoice_id": payload.id})
            span.meta.update({"outcome": CallbackOutcome.FAILED, "reason": "user_not_found"})
            return _ack(CallbackOutcome.FAILED, "User not found")
        user_id = user.id

        try:
            ticket_id, coupon_id = codec.decode_external_id(payload.external_id)
        except DecodeError as e:
            logger.warning("Unattributable callback", extra={"invoice_id": payload.id, "reason": str(e)})
            span.meta.update({"outcome": CallbackOutcome.FAILED, "reason": "decode_failed"})
            return _ack(CallbackOutcome.FAILED, "Invalid external reference")
        span.coupon_id = coupon_id

        try:
            existing = await _find_duplicate(db, payload.external_id)
            if existing:
                span.payment_id = existing.id
                span.meta.update({"outcome": CallbackOutcome.DUPLICATE})
                return _ack(CallbackOutcome.DUPLICATE, "Payment already processed", payment_id=existing.id)

            ticket = await require_ticket(db, ticket_id)
        except NotFound:
            logger.warning("Callback ticket not found", extra={"ticket_id": str(ticket_id)})
            span.meta.update({"outcome": CallbackOutcome.FAILED, "reason": "ticket_not_found"})
            return _ack(CallbackOutcome.FAILED, "Ticket not found")
        except SQLAlchemyError:
            return await _lookup_failed(db, payload, span)
        organizer_id = ticket.event.organizer_id
        span.event_id = ticket.event_id

        try:
            payment, purchases = await _fulfill(
                db, payload, user_id=user_id, ticket_id=ticket_id, coupon_id=coupon_id
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            try:
                duplicate = await _find_duplicate(db, payload.external_id)
            except SQLAlchemyError:
                duplicate = None
                logger.exception("Duplicate re-check failed", extra={"invoice_id": payload.id})
            if duplicate:
                span.meta.update({"outcome": CallbackOutcome.DUPLICATE})
                return _ack(CallbackOutcome.DUPLICATE, "Payment already processed", payment_id=duplicate.id)
            logger.exception("Fulfillment failed", extra={"invoice_id": payload.id})
            span.meta.update({"outcome": CallbackOutcome.FAILED, "reason": "integrity_error"})
            return _ack(CallbackOutcome.FAILED, "Failed to fulfill payment")
        except (SQLAlchemyError, AppError):
            await db.rollback()
            logger.exception("Fulfillment failed", extra={"invoice_id": payload.id})
            span.meta.update({"outcome": CallbackOutcome.FAILED, "reason": "fulfillment_error"})
            return _ack(CallbackOutcome.FAILED, "Failed to fulfill payment")

        span.payment_id = payment.id
        span.meta.update({"outcome": CallbackOutcome.FULFILLED, "purchases": purchases})
        logger.info("Payment fulfilled", extra={"payment_id": str(payment.id), "purchases": purchases})

        payout_status = None
        try:
            payout = await dispatch_payout(
                db,
                payment,
                organizer_id=organizer_id,
                amount=payload.amount - payload.total_fees,
                gateway=gateway,
            )
            payout_status = payout.status
        except Exception:
            # The sale is committed; the payout is reconciled through the admin retry
            await db.rollback()
            logger.exception("Payout dispatch failed", extra={"payment_id": str(payment.id)})
        span.meta.update({"payout_status": payout_status})

        return _ack(
            CallbackOutcome.FULFILLED,
            "Payment fulfilled",
            payment_id=payment.id,
            purchases=purchases,
            payout_status=payout_status,
        )
